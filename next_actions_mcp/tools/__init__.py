"""MCP tool definitions for Next Actions."""

# Import all tools to register them with the MCP server
from next_actions_mcp.tools.core import (
    nextactions_blocked,
    nextactions_explain,
    nextactions_invalidate_cache,
    nextactions_list,
)
from next_actions_mcp.tools.intelligence import (
    nextactions_cycles,
    nextactions_next_recurrence,
    nextactions_reviews_due,
    nextactions_score,
)

__all__ = [
    # Eligibility tools
    "nextactions_list",
    "nextactions_blocked",
    "nextactions_explain",
    "nextactions_invalidate_cache",
    # Intelligence tools
    "nextactions_score",
    "nextactions_next_recurrence",
    "nextactions_cycles",
    "nextactions_reviews_due",
]
