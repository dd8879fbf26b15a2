"""Tool groups exposed by the server."""

from success_mcp.tools.accountability_chart import AccountabilityChartTools
from success_mcp.tools.base import ToolSet, ToolSpec, tool
from success_mcp.tools.comments import CommentTools
from success_mcp.tools.headlines import HeadlineTools
from success_mcp.tools.issues import IssueTools
from success_mcp.tools.meetings import MeetingTools
from success_mcp.tools.milestones import MilestoneTools
from success_mcp.tools.org_checkups import OrgCheckupTools
from success_mcp.tools.people_analyzer import PeopleAnalyzerTools
from success_mcp.tools.rocks import RockTools
from success_mcp.tools.scorecard import ScorecardTools
from success_mcp.tools.search import SearchTools
from success_mcp.tools.teams import TeamTools
from success_mcp.tools.todos import TodoTools
from success_mcp.tools.users import UserTools
from success_mcp.tools.vto import VtoTools

ALL_TOOLSETS: tuple[type[ToolSet], ...] = (
    SearchTools,
    TeamTools,
    UserTools,
    TodoTools,
    RockTools,
    MilestoneTools,
    IssueTools,
    HeadlineTools,
    MeetingTools,
    ScorecardTools,
    VtoTools,
    AccountabilityChartTools,
    PeopleAnalyzerTools,
    OrgCheckupTools,
    CommentTools,
)

__all__ = [
    "ALL_TOOLSETS",
    "AccountabilityChartTools",
    "CommentTools",
    "HeadlineTools",
    "IssueTools",
    "MeetingTools",
    "MilestoneTools",
    "OrgCheckupTools",
    "PeopleAnalyzerTools",
    "RockTools",
    "ScorecardTools",
    "SearchTools",
    "TeamTools",
    "TodoTools",
    "ToolSet",
    "ToolSpec",
    "UserTools",
    "VtoTools",
    "tool",
]
