from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from skillgate_core.errors import ConfigError


def _load_toml(path: Path) -> dict:
    """Load a TOML file, returning empty dict if missing."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(msg) from exc


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base (1 level deep for TOML sections)."""
    merged = dict(base)
    for key, val in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(val, dict)
        ):
            merged[key] = {**merged[key], **val}
        else:
            merged[key] = val
    return merged


@dataclass(frozen=True, slots=True)
class SelectionConfig:
    mode: str = "top1"  # top1 | topK | threshold
    budget: int = 1
    min_score: float = 1e-6


@dataclass(frozen=True, slots=True)
class GateConfig:
    extra_tools: list[str] = field(default_factory=list)
    include_builtin_tools: bool = True


@dataclass(frozen=True, slots=True)
class SourcesConfig:
    paths: list[str] = field(default_factory=lambda: ["./skills"])
    strict_names: bool = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "WARNING"
    json_output: bool = False


@dataclass(frozen=True, slots=True)
class SkillgateConfig:
    """Top-level configuration, parsed from skillgate.toml."""
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_toml(
        cls, path: Path | str = "skillgate.toml"
    ) -> SkillgateConfig:
        path = Path(path)
        raw = _load_toml(path)
        return cls._from_raw(raw)

    @classmethod
    def load(
        cls, project_dir: Path | str | None = None
    ) -> SkillgateConfig:
        """Load config with global → project layering.

        Resolution order (later wins):
        1. Built-in defaults
        2. ~/.skillgate/config.toml (global)
        3. .skillgate/config.toml or skillgate.toml (project)
        """
        global_path = Path.home() / ".skillgate" / "config.toml"

        project_dir = (
            Path.cwd() if project_dir is None else Path(project_dir)
        )

        # Project config: .skillgate/config.toml takes priority
        project_path = project_dir / ".skillgate" / "config.toml"
        if not project_path.exists():
            project_path = project_dir / "skillgate.toml"

        global_raw = _load_toml(global_path)
        project_raw = _load_toml(project_path)
        merged = _deep_merge(global_raw, project_raw)

        return cls._from_raw(merged)

    @classmethod
    def _from_raw(cls, raw: dict) -> SkillgateConfig:
        """Build SkillgateConfig from a raw TOML dict."""

        def _pick(section: dict, dc: type) -> dict:
            fields = dc.__dataclass_fields__
            return {
                k: v for k, v in section.items() if k in fields
            }

        return cls(
            selection=SelectionConfig(
                **_pick(raw.get("selection", {}), SelectionConfig)
            ),
            gate=GateConfig(**_pick(raw.get("gate", {}), GateConfig)),
            sources=SourcesConfig(
                **_pick(raw.get("sources", {}), SourcesConfig)
            ),
            logging=LoggingConfig(
                **_pick(raw.get("logging", {}), LoggingConfig)
            ),
        )
