"""Tests for the permission gate and activation tokens."""
from __future__ import annotations

import logging

import pytest
from skillgate_core.config import GateConfig, SkillgateConfig
from skillgate_core.errors import PermissionDeniedError
from skillgate_engine import (
    DenialReason,
    SkillEngine,
    StaticSkillSource,
    ToolCatalog,
)


class TestPermissionGate:
    """Tests for authorize/require/release through the engine."""

    def test_allow_list(self, engine: SkillEngine) -> None:
        """Tools outside the allowlist are denied; listed tools are allowed."""
        token = engine.activate("security-checklist")

        denied = engine.authorize(token, "Bash")
        assert denied.denied
        assert denied.reason is DenialReason.NOT_IN_ALLOW_LIST

        allowed = engine.authorize(token, "Read")
        assert allowed.allowed
        assert allowed.reason is None
        assert allowed.skill_name == "security-checklist"
        assert allowed.token_id == token.token_id

    def test_unknown_tool_fails_closed(self, engine: SkillEngine) -> None:
        token = engine.activate("docker-patterns")
        assert engine.authorize(token, "LaunchMissiles").reason is DenialReason.UNKNOWN_TOOL
        assert engine.authorize(token, "").reason is DenialReason.UNKNOWN_TOOL

    def test_membership_is_case_sensitive(self, engine: SkillEngine) -> None:
        token = engine.activate("security-checklist")
        assert engine.authorize(token, "read").denied

    def test_tool_declared_by_other_skill_is_known(self, engine: SkillEngine) -> None:
        """A custom tool declared anywhere is known, but only its skill may use it."""
        engine.register(
            {"name": "jira-helper", "description": "Track issues", "allowed-tools": ["mcp__jira"]}
        )
        jira = engine.activate("jira-helper")
        security = engine.activate("security-checklist")

        assert engine.authorize(jira, "mcp__jira").allowed
        assert engine.authorize(security, "mcp__jira").reason is DenialReason.NOT_IN_ALLOW_LIST

    def test_empty_allow_list_denies_everything(self, engine: SkillEngine) -> None:
        engine.register({"name": "prose-only", "description": "Writing style guide"})
        token = engine.activate("prose-only")
        for tool in ["Read", "Bash", "Write"]:
            assert engine.authorize(token, tool).reason is DenialReason.NOT_IN_ALLOW_LIST

    def test_release_revokes(self, engine: SkillEngine) -> None:
        """After release every check is TOKEN_RELEASED, even allowed tools."""
        token = engine.activate("security-checklist")
        engine.release(token)

        assert token.released
        assert engine.authorize(token, "Read").reason is DenialReason.TOKEN_RELEASED
        assert engine.authorize(token, "Bash").reason is DenialReason.TOKEN_RELEASED

    def test_release_is_idempotent(self, engine: SkillEngine) -> None:
        token = engine.activate("security-checklist")
        engine.release(token)
        engine.release(token)
        assert engine.authorize(token, "Read").reason is DenialReason.TOKEN_RELEASED

    def test_reactivation_does_not_revive_old_token(self, engine: SkillEngine) -> None:
        old = engine.activate("security-checklist")
        engine.release(old)
        new = engine.activate("security-checklist")

        assert engine.authorize(new, "Read").allowed
        assert engine.authorize(old, "Read").reason is DenialReason.TOKEN_RELEASED

    def test_stale_after_reload(self, engine: SkillEngine, sample_source) -> None:
        token = engine.activate("security-checklist")
        engine.reload(sample_source)
        assert engine.authorize(token, "Read").reason is DenialReason.STALE_TOKEN
        assert engine.authorize(engine.activate("security-checklist"), "Read").allowed

    def test_stale_after_unregister_and_reregister(self, engine: SkillEngine) -> None:
        token = engine.activate("git-workflow")
        engine.unregister("git-workflow")
        assert engine.authorize(token, "Bash").reason is DenialReason.STALE_TOKEN

        engine.register(
            {"name": "git-workflow", "description": "Git again", "allowed-tools": ["Bash"]}
        )
        assert engine.authorize(token, "Bash").reason is DenialReason.STALE_TOKEN

    def test_unrelated_registration_keeps_token_valid(self, engine: SkillEngine) -> None:
        token = engine.activate("git-workflow")
        engine.register({"name": "extra", "description": "Something else"})
        assert engine.authorize(token, "Bash").allowed

    def test_release_beats_staleness(self, engine: SkillEngine, sample_source) -> None:
        token = engine.activate("git-workflow")
        engine.release(token)
        engine.reload(sample_source)
        assert engine.authorize(token, "Bash").reason is DenialReason.TOKEN_RELEASED

    def test_require_raises(self, engine: SkillEngine) -> None:
        token = engine.activate("security-checklist")
        assert engine.require(token, "Grep").allowed

        with pytest.raises(PermissionDeniedError, match="not_in_allow_list") as exc_info:
            engine.require(token, "Bash")
        assert exc_info.value.authorization.tool == "Bash"

    def test_audit_trail(self, engine: SkillEngine) -> None:
        """Each decision is recorded on the token that asked."""
        token = engine.activate("security-checklist")
        engine.authorize(token, "Read")
        engine.authorize(token, "Bash")

        trail = token.audit_trail
        assert [d.tool for d in trail] == ["Read", "Bash"]
        assert [d.allowed for d in trail] == [True, False]
        assert engine.activate("security-checklist").audit_trail == ()

    def test_denials_are_logged(
        self, engine: SkillEngine, caplog: pytest.LogCaptureFixture
    ) -> None:
        token = engine.activate("security-checklist")
        with caplog.at_level(logging.WARNING, logger="skillgate.engine.gate"):
            engine.authorize(token, "Bash")
        assert any(
            "Bash" in r.getMessage() and "not_in_allow_list" in r.getMessage()
            for r in caplog.records
        )

    def test_token_carries_body(self, engine: SkillEngine) -> None:
        token = engine.activate("docker-patterns")
        assert token.body.startswith("# Docker Patterns")
        assert token.allowed_tools == {"Read", "Write", "Bash"}


class TestToolCatalog:
    def test_builtin_names(self) -> None:
        catalog = ToolCatalog()
        assert catalog.knows("Bash")
        assert not catalog.knows("Deploy")
        assert catalog.knows("Deploy", frozenset({"Deploy"}))

    def test_describe(self) -> None:
        assert "shell" in ToolCatalog.describe("Bash")
        assert ToolCatalog.describe("Custom") == "Tool: Custom"

    def test_extra_tools_from_config(self) -> None:
        """Configured extras are known tools, so denial says not allowlisted."""
        engine = SkillEngine(SkillgateConfig(gate=GateConfig(extra_tools=["Deploy"])))
        engine.register(
            {"name": "security-checklist", "description": "Review", "allowed-tools": "Read"}
        )
        token = engine.activate("security-checklist")
        assert engine.authorize(token, "Deploy").reason is DenialReason.NOT_IN_ALLOW_LIST

    def test_without_builtin_tools(self) -> None:
        """With built-ins disabled only declared and configured tools are known."""
        engine = SkillEngine(
            SkillgateConfig(gate=GateConfig(include_builtin_tools=False))
        )
        engine.load_skills(StaticSkillSource([
            ({"name": "security-checklist", "description": "Review", "allowed-tools": "Read"}, ""),
        ]))
        token = engine.activate("security-checklist")
        assert engine.authorize(token, "Read").allowed
        assert engine.authorize(token, "Bash").reason is DenialReason.UNKNOWN_TOOL
