"""Input models for Next Actions MCP tools."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from next_actions_mcp.enums import ResponseFormat

# ============================================================================
# Eligibility Tool Input Models
# ============================================================================


class ListNextActionsInput(BaseModel):
    """Input model for listing ranked next actions."""

    model_config = ConfigDict(str_strip_whitespace=True)

    limit: int | None = Field(default=20, description="Maximum number of tasks to return", ge=1, le=500)
    now: datetime | None = Field(
        default=None,
        description="Evaluation time as ISO 8601 (defaults to the current time)",
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown', 'concise', or 'json'",
    )


class BlockedInput(BaseModel):
    """Input model for listing blocked tasks."""

    model_config = ConfigDict(str_strip_whitespace=True)

    include_completed: bool = Field(
        default=False,
        description="Also list done and canceled tasks",
    )
    limit: int | None = Field(default=50, description="Maximum number of tasks to return", ge=1, le=500)
    now: datetime | None = Field(default=None, description="Evaluation time as ISO 8601")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown', 'concise', or 'json'",
    )


class ExplainInput(BaseModel):
    """Input model for explaining one task's eligibility."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task id (mirror ids are accepted)", min_length=1)
    now: datetime | None = Field(default=None, description="Evaluation time as ISO 8601")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown', 'concise', or 'json'",
    )


class InvalidateCacheInput(BaseModel):
    """Input model for dropping cached evaluations."""

    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str | None = Field(
        default=None,
        description="Optional note on what changed (e.g., 'status of 42 set to Done')",
        max_length=500,
    )


# ============================================================================
# Intelligence Tool Input Models
# ============================================================================


class ScoreTaskInput(BaseModel):
    """Input model for scoring ad-hoc priority inputs."""

    model_config = ConfigDict(str_strip_whitespace=True)

    importance: float | None = Field(default=None, description="Importance 0-100 (null = neutral 50)")
    urgency: float | None = Field(default=None, description="Urgency 0-100 (null = neutral 50)")
    start_time: datetime | None = Field(default=None, description="Start time as ISO 8601")
    end_time: datetime | None = Field(default=None, description="Due time as ISO 8601")
    demand: float | None = Field(
        default=None,
        description="Highest score among open tasks depending on this one (enables the rich variant)",
        ge=0,
        le=100,
    )
    dependent_count: int | None = Field(default=None, description="Number of open dependents", ge=0)
    wait_days: float | None = Field(default=None, description="Days since the task was last touched", ge=0)
    now: datetime | None = Field(default=None, description="Evaluation time as ISO 8601")


class NextRecurrenceInput(BaseModel):
    """Input model for computing the next occurrence of a recurring task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    rule: str | None = Field(
        default=None,
        description="Repeat rule: JSON ({\"unit\": \"week\", \"weekday\": 1}) or text ('every 2 weeks', 'monthly 09:00'). "
        "Defaults to the task's rule when task_id is given",
        max_length=1000,
    )
    task_id: str | None = Field(
        default=None,
        description="Read the current status, dates and rule from this task (e.g., 'abc123')",
        max_length=100,
    )
    previous_status: str | None = Field(
        default=None,
        description="Status before the change (defaults to the task status, else the first status choice)",
    )
    status: str | None = Field(default=None, description="New status (defaults to the done status)")
    start_time: datetime | None = Field(default=None, description="Current start time as ISO 8601")
    end_time: datetime | None = Field(default=None, description="Current due time as ISO 8601")
    now: datetime | None = Field(default=None, description="Reference time as ISO 8601")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown', 'concise', or 'json'",
    )

    @field_validator("rule")
    @classmethod
    def validate_rule(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Rule cannot be empty")
        return v.strip() if v is not None else None


class CyclesInput(BaseModel):
    """Input model for listing dependency cycles."""

    model_config = ConfigDict(str_strip_whitespace=True)

    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown', 'concise', or 'json'",
    )


class ReviewsDueInput(BaseModel):
    """Input model for listing tasks whose review is due."""

    model_config = ConfigDict(str_strip_whitespace=True)

    limit: int | None = Field(default=50, description="Maximum number of tasks to return", ge=1, le=500)
    now: datetime | None = Field(default=None, description="Evaluation time as ISO 8601")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown', 'concise', or 'json'",
    )
