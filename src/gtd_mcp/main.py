"""Main entry point for gtdmcp MCP server."""

import argparse
import logging
import sys

from fastmcp import FastMCP

from gtd_mcp.auth import get_auth_provider
from gtd_mcp.config import Config
from gtd_mcp.index import TaskIndex
from gtd_mcp.settings import SettingsProvider
from gtd_mcp.store import DocumentStore
from gtd_mcp.sync import SyncManager
from gtd_mcp.tools import register_tools
from gtd_mcp.tools_write import register_tools_write

logger = logging.getLogger(__name__)


def create_server(config: Config, start_sync: bool = False) -> FastMCP:
    """Create and configure the MCP server with all components.

    Args:
        config: Configuration instance with all settings.
        start_sync: Start the background vault watcher (when the configured
            interval is positive).
    """
    auth_provider = get_auth_provider(config)

    mcp = FastMCP(
        name="gtdMCP",
        instructions=(
            "gtdMCP files the markdown checkbox tasks of a notes vault into time-horizon "
            "buckets (today, this week, someday, ...). Use list_buckets to see what is "
            "due when, and move_task or toggle_task to update tasks in place."
        ),
        auth=auth_provider,
    )

    logger.info("Loading bucket settings from %s", config.settings_path)
    settings_provider = SettingsProvider(config.settings_path)

    store = DocumentStore(config.vault_root)
    index = TaskIndex(store, lambda: settings_provider.current.task_scope)

    logger.info("Performing initial index of %s...", config.vault_root)
    task_count = index.initial_scan()
    logger.info("Initial index complete: %d tasks indexed", task_count)

    logger.info("Registering read tools...")
    register_tools(mcp, index, settings_provider)

    logger.info("Registering write tools...")
    register_tools_write(mcp, config, store, index, settings_provider)

    if start_sync and config.sync_interval > 0:
        sync_manager = SyncManager(
            store,
            index,
            lambda: settings_provider.current.task_scope,
            config.sync_interval,
        )
        sync_manager.start()
    else:
        logger.info("Vault watcher disabled")

    logger.info("Server configured successfully")
    return mcp


def main() -> None:
    """Main function - starts the MCP server."""
    # Configure logging here to avoid side effects on import
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="gtdMCP - GTD bucket server for markdown vaults")
    parser.add_argument(
        "--reindex-only",
        action="store_true",
        help="Scan the vault, report the task count and exit",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Run in read-only mode (disable write tools)",
    )
    args = parser.parse_args()

    try:
        config = Config.from_env(read_only_override=args.read_only if args.read_only else None)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    logger.info("=" * 50)
    logger.info("gtdMCP starting...")
    logger.info("  GTD_VAULT_ROOT: %s", config.vault_root)
    logger.info("  GTD_SETTINGS:   %s", config.settings_path)
    logger.info("  GTD_PORT:       %s", config.port)
    logger.info("  AUTH:           %s", "enabled" if config.auth_token else "disabled")
    logger.info("  READ_ONLY:      %s", config.read_only)
    logger.info("  SYNC_INTERVAL:  %ss", config.sync_interval)
    logger.info("=" * 50)

    if args.reindex_only:
        settings_provider = SettingsProvider(config.settings_path)
        index = TaskIndex(
            DocumentStore(config.vault_root),
            lambda: settings_provider.current.task_scope,
        )
        task_count = index.initial_scan()
        logger.info("Reindex complete: %d tasks indexed", task_count)
        return

    try:
        mcp = create_server(config, start_sync=True)
        logger.info("Starting MCP server on port %s...", config.port)
        mcp.run(transport="sse", host="0.0.0.0", port=config.port)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception:
        logger.exception("Server error")
        sys.exit(1)


if __name__ == "__main__":
    main()
