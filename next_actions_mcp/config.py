"""Task schema and engine settings for Next Actions MCP.

The schema maps task semantics (status, start time, dependencies, ...) onto
the property names used by the host store. It is passed explicitly into
every reader and evaluator call.
"""

import logging
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

from next_actions_mcp.enums import DependencyMode

logger = logging.getLogger(__name__)

TASK_TAG_ALIAS = "Task"

DEFAULT_CANCELED_STATUSES = frozenset({"canceled", "cancelled", "已取消", "取消"})


class TaskFieldNames(BaseModel):
    """Property names read from a task node."""

    model_config = ConfigDict(frozen=True)

    status: str = "Status"
    start_time: str = "Start time"
    end_time: str = "End time"
    depends_on: str = "Depends on"
    depends_mode: str = "Depends mode"
    dependency_delay: str = "Dependency delay"
    importance: str = "Importance"
    urgency: str = "Urgency"
    effort: str = "Effort"
    star: str = "Star"
    labels: str = "Labels"
    review: str = "Review"
    recurrence_rule: str = "Repeat rule"
    completed_at: str = "Completed at"


class TaskSchema(BaseModel):
    """Field-name mapping and status vocabulary for one task tag."""

    model_config = ConfigDict(frozen=True)

    locale: str = "en"
    tag_alias: str = TASK_TAG_ALIAS
    field_names: TaskFieldNames = Field(default_factory=TaskFieldNames)
    status_choices: tuple[str, str, str, str] = ("TODO", "Doing", "Waiting", "Done")
    canceled_statuses: frozenset[str] = DEFAULT_CANCELED_STATUSES
    dependency_mode_choices: tuple[DependencyMode, DependencyMode] = (DependencyMode.ALL, DependencyMode.ANY)

    @property
    def default_status(self) -> str:
        return self.status_choices[0]

    @property
    def doing_status(self) -> str:
        return self.status_choices[1]

    @property
    def done_status(self) -> str:
        return self.status_choices[3]

    def is_done(self, status: str | None) -> bool:
        return status == self.done_status

    def is_canceled(self, status: str | None) -> bool:
        if not isinstance(status, str):
            return False
        return status.strip().lower() in self.canceled_statuses

    def is_terminal(self, status: str | None) -> bool:
        """Done and canceled tasks never block anything."""
        return self.is_done(status) or self.is_canceled(status)

    def next_status_in_cycle(self, status: str | None) -> str:
        """Main status cycle: Todo -> Doing -> Done -> Todo."""
        if status == self.default_status:
            return self.doing_status
        if status == self.doing_status:
            return self.done_status
        return self.default_status


_ZH_FIELD_NAMES = TaskFieldNames(
    status="状态",
    start_time="开始时间",
    end_time="结束时间",
    depends_on="依赖任务",
    depends_mode="依赖模式",
    dependency_delay="依赖延迟",
    importance="重要性",
    urgency="紧急度",
    effort="工作量",
    star="收藏",
    labels="标签",
    review="回顾",
    recurrence_rule="重复规则",
    completed_at="完成时间",
)

_SCHEMA_BY_LOCALE: dict[str, TaskSchema] = {
    "en": TaskSchema(),
    "zh-CN": TaskSchema(
        locale="zh-CN",
        field_names=_ZH_FIELD_NAMES,
        status_choices=("待开始", "进行中", "等待中", "已完成"),
    ),
}


def get_task_schema(locale: str = "en", tag_alias: str = TASK_TAG_ALIAS) -> TaskSchema:
    """Return the schema preset for a locale (unknown locales use English)."""
    schema = _SCHEMA_BY_LOCALE.get(locale, _SCHEMA_BY_LOCALE["en"])
    if schema.tag_alias == tag_alias:
        return schema
    return schema.model_copy(update={"tag_alias": tag_alias})


class EngineSettings(BaseModel):
    """Runtime settings for the next-action service and MCP server."""

    model_config = ConfigDict(str_strip_whitespace=True)

    locale: str = Field(default="en", description="Schema preset: 'en' or 'zh-CN'")
    tag_alias: str = Field(default=TASK_TAG_ALIAS, description="Tag marking a node as a task", min_length=1)
    cache_ttl_seconds: float = Field(default=1.5, description="Lifetime of a cached resolution pass", gt=0, le=3600)
    surface_due_reviews: bool = Field(
        default=False,
        description="Surface review-enabled tasks whose review is due even when blocked",
    )
    rich_scoring: bool = Field(default=True, description="Blend dependency demand and wait time into scores")
    snapshot_path: str | None = Field(default=None, description="JSON file holding the raw task nodes")

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        if v not in _SCHEMA_BY_LOCALE:
            raise ValueError(f"Unknown locale '{v}', expected one of {sorted(_SCHEMA_BY_LOCALE)}")
        return v

    def task_schema(self) -> TaskSchema:
        return get_task_schema(self.locale, self.tag_alias)


_ENV_FIELDS = {
    "NEXT_ACTIONS_LOCALE": "locale",
    "NEXT_ACTIONS_TAG": "tag_alias",
    "NEXT_ACTIONS_CACHE_TTL": "cache_ttl_seconds",
    "NEXT_ACTIONS_SURFACE_REVIEWS": "surface_due_reviews",
    "NEXT_ACTIONS_RICH_SCORING": "rich_scoring",
    "NEXT_ACTIONS_SNAPSHOT": "snapshot_path",
}


def load_settings(environ: dict[str, str] | None = None) -> EngineSettings:
    """
    Build settings from environment variables.

    Each variable is validated on its own; an invalid value is logged and
    the default is kept.
    """
    env = os.environ if environ is None else environ
    settings = EngineSettings()

    for var, field_name in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw.strip() == "":
            continue
        try:
            settings = EngineSettings.model_validate({**settings.model_dump(), field_name: raw})
        except ValueError as e:
            logger.warning("Ignoring invalid %s=%r: %s", var, raw, e)

    return settings
