from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


SAMPLE_SKILLS: list[tuple[dict, str]] = [
    (
        {
            "name": "docker-patterns",
            "description": "Dockerfile multi-stage build patterns for small production images",
            "allowed-tools": ["Read", "Write", "Bash"],
        },
        "# Docker Patterns\n\nPrefer multi-stage builds.",
    ),
    (
        {
            "name": "git-workflow",
            "description": "Git branching strategy and commit messages conventions",
            "allowed-tools": ["Bash"],
        },
        "# Git Workflow\n\nUse conventional commits.",
    ),
    (
        {
            "name": "security-checklist",
            "description": "Security review checklist for secrets and input validation",
            "allowed-tools": "Read, Grep, Glob",
        },
        "# Security Checklist\n\nNever commit secrets.",
    ),
]


def write_skill_md(skill_dir: Path, content: str) -> Path:
    """Write a SKILL.md into the given directory and return its path."""
    skill_dir.mkdir(parents=True, exist_ok=True)
    skill_file = skill_dir / "SKILL.md"
    skill_file.write_text(textwrap.dedent(content), encoding="utf-8")
    return skill_file


@pytest.fixture
def sample_source():
    from skillgate_engine import StaticSkillSource
    return StaticSkillSource(SAMPLE_SKILLS, source_id="samples")


@pytest.fixture
def engine(sample_source):
    from skillgate_engine import SkillEngine
    eng = SkillEngine()
    report = eng.load_skills(sample_source)
    assert report.loaded_count == len(SAMPLE_SKILLS)
    return eng


@pytest.fixture
def skills_dir(tmp_path: Path) -> Path:
    """A directory tree holding the sample skills as SKILL.md files."""
    root = tmp_path / "skills"
    write_skill_md(
        root / "docker-patterns",
        """\
        ---
        name: docker-patterns
        description: Dockerfile multi-stage build patterns for small production images
        allowed-tools:
          - Read
          - Write
          - Bash
        ---

        # Docker Patterns
        """,
    )
    write_skill_md(
        root / "vcs" / "git-workflow",
        """\
        ---
        name: git-workflow
        description: Git branching strategy and commit messages conventions
        allowed-tools: Bash
        ---

        # Git Workflow
        """,
    )
    write_skill_md(
        root / "security-checklist",
        """\
        ---
        name: security-checklist
        description: Security review checklist for secrets and input validation
        allowed-tools: Read, Grep, Glob
        ---

        # Security Checklist
        """,
    )
    return root


@pytest.fixture
def make_skill():
    """Return the SKILL.md writer for tests that build their own trees."""
    return write_skill_md
