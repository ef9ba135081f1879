"""FastMCP server initialization for Next Actions MCP."""

import logging

from mcp.server.fastmcp import FastMCP

from next_actions_mcp.config import load_settings
from next_actions_mcp.core.service import NextActionService
from next_actions_mcp.utils.store import InMemoryTaskStore, JsonSnapshotStore

logger = logging.getLogger(__name__)

# Initialize the MCP server
mcp = FastMCP("next_actions_mcp")

_service: NextActionService | None = None


def get_service() -> NextActionService:
    """Return the process service, building it from the environment on first use."""
    global _service
    if _service is None:
        settings = load_settings()
        if settings.snapshot_path:
            store = JsonSnapshotStore(settings.snapshot_path)
        else:
            logger.warning("NEXT_ACTIONS_SNAPSHOT is not set; serving an empty task store")
            store = InMemoryTaskStore()
        _service = NextActionService(store, settings=settings)
    return _service


def set_service(service: NextActionService | None) -> None:
    """Install the service the tools use (None resets to the environment default)."""
    global _service
    _service = service


def run() -> None:
    """Run the MCP server."""
    # Importing the tools registers them with the server.
    import next_actions_mcp.tools  # noqa: F401

    mcp.run()


if __name__ == "__main__":
    run()
