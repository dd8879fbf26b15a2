"""Configuration commands for the success-mcp CLI."""

from cyclopts import App

from success_mcp.config import get_config

config_app = App(name="config", help="Manage configuration")

SECRET_KEYS = ("api_key", "database.password", "database.url")


def display_value(key: str, value: object) -> str:
    """Mask secrets, keeping the last four characters."""
    text = str(value)
    if key in SECRET_KEYS and len(text) > 4:
        return "*" * (len(text) - 4) + text[-4:]
    return text


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration value, e.g. ``graphql.mode local`` or ``api_key suc_api_...``.

    Args:
        key: Configuration key
        value: Configuration value
        global_: Write to ~/.success-mcp instead of ./.success-mcp
    """
    get_config(use_global=global_).set(key, value)
    print(f"Set {key} = {display_value(key, value)} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a configuration value.

    Args:
        key: Configuration key
        global_: Remove from the global config
    """
    get_config(use_global=global_).unset(key)
    print(f"Unset {key} ({_scope(global_)})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Show one configuration value.

    Args:
        key: Configuration key
        global_: Read the global config only
    """
    value = get_config(use_global=global_).get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {display_value(key, value)}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """List configuration values, local over global unless --global is given.

    Args:
        global_: List the global config only
    """
    values = get_config(use_global=global_).list()
    if not values:
        print(f"No {_scope(global_)} configuration settings")
        return
    for key, value in sorted(values.items()):
        print(f"{key} = {display_value(key, value)}")
