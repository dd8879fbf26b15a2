"""Comment tools. Comments attach to any entity (issue, rock, todo, milestone, meeting, ...)."""

import structlog

from success_mcp.errors import RequiredFieldError, ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

COMMENTS_QUERY = """
query Comments($filter: CommentFilter, $first: Int, $offset: Int) {
  comments(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      entityType
      entityId
      userId
      comment
      createdAt
      updatedAt
      stateId
    }
    totalCount
  }
}
"""

COMMENT_FIELDS = "id objectId userId text createdAt stateId companyId"


class CommentTools(ToolSet):
    @tool("getComments", "fetching comments")
    async def get_comments(
        self,
        first: int = 50,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        entity_type: str | None = None,
        entity_id: str | None = None,
        user_id: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
    ) -> ToolResponse:
        """List comments, typically the comments on one entity.

        Args:
            first: Page size
            offset: Number of comments to skip
            state_id: ACTIVE, INACTIVE or DELETED
            entity_type: issue, rock, todo, milestone, meeting, ...
            entity_id: Only comments on this entity
            user_id: Only comments by this user
            created_after: Created on or after this ISO date
            created_before: Created on or before this ISO date
        """
        validate_state_id(state_id)
        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("entityType", entity_type)
            .equal("entityId", entity_id)
            .equal("userId", user_id)
            .gte("createdAt", created_after)
            .lte("createdAt", created_before)
        )
        data = await self._query(COMMENTS_QUERY, page_variables(filter_, first, offset))
        comments, total = self._connection(data, "comments")
        return success_response(
            {
                "totalCount": total,
                "results": [
                    {
                        "id": c["id"],
                        "entityType": c.get("entityType"),
                        "entityId": c.get("entityId"),
                        "userId": c.get("userId"),
                        "comment": c.get("comment"),
                        "createdAt": c.get("createdAt"),
                        "updatedAt": c.get("updatedAt"),
                        "status": c.get("stateId"),
                    }
                    for c in comments
                ],
            }
        )

    @tool("createComment", "creating comment", read_only=False)
    async def create_comment(self, comment: str, entity_type: str, entity_id: str) -> ToolResponse:
        """Comment on an entity as the authenticated user.

        Args:
            comment: Comment text
            entity_type: issue, rock, todo, milestone, meeting, ...
            entity_id: Entity to comment on
        """
        if not comment or not comment.strip():
            raise RequiredFieldError("comment")
        if not entity_type:
            raise RequiredFieldError("entityType")
        if not entity_id:
            raise RequiredFieldError("entityId")
        user_context = await self.context.require_user_context()

        # the API infers the entity type from objectId
        comment_input = {
            "text": comment,
            "objectId": entity_id,
            "userId": user_context.user_id,
            "companyId": user_context.company_id,
            "stateId": "ACTIVE",
        }
        logger.info("Creating comment", entity_type=entity_type, entity_id=entity_id)
        created = await self._mutate("createComment", "comment", COMMENT_FIELDS, {"comment": comment_input})
        return success_response({"success": True, "message": "Comment created successfully", "comment": created})

    @tool("updateComment", "updating comment", read_only=False)
    async def update_comment(self, comment_id: str, comment: str) -> ToolResponse:
        """Replace the text of a comment.

        Args:
            comment_id: Comment to update
            comment: New text
        """
        if not comment_id:
            raise RequiredFieldError("commentId")
        if not comment or not comment.strip():
            raise RequiredFieldError("comment")
        await self.context.require_user_context()
        updated = await self._mutate(
            "updateComment", "comment", COMMENT_FIELDS, {"id": comment_id, "patch": {"text": comment}}
        )
        return success_response({"success": True, "message": "Comment updated successfully", "comment": updated})

    @tool("deleteComment", "deleting comment", read_only=False, destructive=True)
    async def delete_comment(self, comment_id: str) -> ToolResponse:
        """Delete a comment by marking it DELETED.

        Args:
            comment_id: Comment to delete
        """
        if not comment_id:
            raise RequiredFieldError("commentId")
        await self.context.require_user_context()
        deleted = await self._soft_delete("updateComment", "comment", comment_id)
        return success_response(
            {
                "success": True,
                "message": "Comment deleted successfully",
                "comment": {"id": deleted["id"], "status": deleted.get("stateId")},
            }
        )
