"""Tests for the task schema, settings, enums and input models."""

import logging
from datetime import datetime

import pytest
from pydantic import ValidationError

from next_actions_mcp import (
    BlockReason,
    DependencyMode,
    EngineSettings,
    ExplainInput,
    ListNextActionsInput,
    NextRecurrenceInput,
    ResponseFormat,
    ScoreTaskInput,
    get_task_schema,
    load_settings,
)


class TestTaskSchema:
    """Tests for schema presets and status helpers."""

    def test_english_preset(self, schema):
        """Statuses are ordered Todo, Doing, Waiting, Done."""
        assert schema.default_status == "TODO"
        assert schema.doing_status == "Doing"
        assert schema.done_status == "Done"
        assert schema.field_names.depends_on == "Depends on"

    def test_chinese_preset(self):
        """zh-CN uses localized statuses and field names."""
        schema = get_task_schema("zh-CN")
        assert schema.done_status == "已完成"
        assert schema.field_names.status == "状态"

    def test_unknown_locale_falls_back(self):
        """Unknown locales use the English preset."""
        assert get_task_schema("fr").done_status == "Done"

    def test_custom_tag(self):
        """A custom tag alias is applied to the preset."""
        assert get_task_schema("en", "Todo").tag_alias == "Todo"

    def test_canceled_is_case_insensitive(self, schema):
        """Canceled statuses are matched after trimming and lowercasing."""
        assert schema.is_canceled(" Cancelled ")
        assert schema.is_canceled("已取消")
        assert not schema.is_canceled("Done")
        assert not schema.is_canceled(None)

    def test_terminal(self, schema):
        """Done and canceled are terminal."""
        assert schema.is_terminal("Done")
        assert schema.is_terminal("canceled")
        assert not schema.is_terminal("Waiting")

    def test_status_cycle(self, schema):
        """Todo -> Doing -> Done -> Todo; anything else -> Todo."""
        assert schema.next_status_in_cycle("TODO") == "Doing"
        assert schema.next_status_in_cycle("Doing") == "Done"
        assert schema.next_status_in_cycle("Done") == "TODO"
        assert schema.next_status_in_cycle("Waiting") == "TODO"


class TestSettings:
    """Tests for settings from the environment."""

    def test_defaults(self):
        """Defaults apply when nothing is set."""
        settings = load_settings({})
        assert settings.locale == "en"
        assert settings.cache_ttl_seconds == 1.5
        assert not settings.surface_due_reviews
        assert settings.rich_scoring
        assert settings.snapshot_path is None

    def test_environment_values(self):
        """Each variable maps to its setting."""
        settings = load_settings(
            {
                "NEXT_ACTIONS_LOCALE": "zh-CN",
                "NEXT_ACTIONS_TAG": "Todo",
                "NEXT_ACTIONS_CACHE_TTL": "5",
                "NEXT_ACTIONS_SURFACE_REVIEWS": "true",
                "NEXT_ACTIONS_RICH_SCORING": "0",
                "NEXT_ACTIONS_SNAPSHOT": "/tmp/tasks.json",
            }
        )
        assert settings.locale == "zh-CN"
        assert settings.tag_alias == "Todo"
        assert settings.cache_ttl_seconds == 5
        assert settings.surface_due_reviews
        assert not settings.rich_scoring
        assert settings.snapshot_path == "/tmp/tasks.json"
        assert settings.task_schema().done_status == "已完成"

    def test_invalid_value_keeps_default(self, caplog):
        """Invalid values are logged and ignored."""
        with caplog.at_level(logging.WARNING):
            settings = load_settings({"NEXT_ACTIONS_CACHE_TTL": "-3", "NEXT_ACTIONS_LOCALE": "xx"})
        assert settings.cache_ttl_seconds == 1.5
        assert settings.locale == "en"
        assert "NEXT_ACTIONS_CACHE_TTL" in caplog.text
        assert "NEXT_ACTIONS_LOCALE" in caplog.text

    def test_locale_validation(self):
        """Unknown locales are rejected by the model."""
        with pytest.raises(ValidationError):
            EngineSettings(locale="xx")


class TestEnums:
    """Tests for enum values."""

    def test_block_reason_values(self):
        """Reasons use their hyphenated names."""
        assert BlockReason.ANCESTOR_DEPENDENCY_UNMET.value == "ancestor-dependency-unmet"
        assert BlockReason.DEPENDENCY_DELAYED.value == "dependency-delayed"
        assert len(BlockReason) == 7

    def test_response_format_values(self):
        """Three output formats."""
        assert {f.value for f in ResponseFormat} == {"concise", "markdown", "json"}

    def test_dependency_mode_values(self):
        """ALL and ANY."""
        assert DependencyMode("ANY") is DependencyMode.ANY


class TestInputModels:
    """Tests for tool input validation."""

    def test_list_defaults(self):
        """Default limit and format."""
        params = ListNextActionsInput()
        assert params.limit == 20
        assert params.response_format == ResponseFormat.MARKDOWN
        assert params.now is None

    def test_list_limit_validation(self):
        """Limits must be within range."""
        with pytest.raises(ValidationError):
            ListNextActionsInput(limit=0)
        with pytest.raises(ValidationError):
            ListNextActionsInput(limit=501)

    def test_now_parsed_from_iso(self):
        """ISO strings become datetimes."""
        params = ListNextActionsInput(now="2025-03-10T12:00:00+00:00")
        assert isinstance(params.now, datetime)

    def test_explain_requires_task_id(self):
        """task_id is required and stripped."""
        with pytest.raises(ValidationError):
            ExplainInput()
        assert ExplainInput(task_id="  42 ").task_id == "42"

    def test_recurrence_rule_not_blank(self):
        """Blank rules are rejected."""
        with pytest.raises(ValidationError):
            NextRecurrenceInput(rule="   ")

    def test_score_input_bounds(self):
        """Graph inputs are bounded."""
        with pytest.raises(ValidationError):
            ScoreTaskInput(demand=101)
        with pytest.raises(ValidationError):
            ScoreTaskInput(dependent_count=-1)
