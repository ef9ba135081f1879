"""Enums for Next Actions MCP."""

from enum import Enum


class ResponseFormat(str, Enum):
    """Output format for tool responses."""

    CONCISE = "concise"  # Minimal output for chaining (~50% smaller than markdown)
    MARKDOWN = "markdown"  # Human-readable (default)
    JSON = "json"  # Machine-readable with all fields


class DependencyMode(str, Enum):
    """How a dependency list is satisfied."""

    ALL = "ALL"
    ANY = "ANY"


class BlockReason(str, Enum):
    """Why a task is not an actionable next action."""

    COMPLETED = "completed"
    CANCELED = "canceled"
    NOT_STARTED = "not-started"
    HAS_OPEN_CHILDREN = "has-open-children"
    ANCESTOR_DEPENDENCY_UNMET = "ancestor-dependency-unmet"
    DEPENDENCY_UNMET = "dependency-unmet"
    DEPENDENCY_DELAYED = "dependency-delayed"


class RecurrenceUnit(str, Enum):
    """Step unit of a recurrence or review rule."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class ReviewType(str, Enum):
    """Spaced review flavour."""

    SINGLE = "single"
    CYCLE = "cycle"


class EvaluationFilter(str, Enum):
    """Which evaluations a resolution pass returns."""

    ALL = "all"
    ACTIONABLE = "actionable"
    BLOCKED = "blocked"
