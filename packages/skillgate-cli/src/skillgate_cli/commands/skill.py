"""Skill commands: list, query, check."""
from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from skillgate_core.config import SkillgateConfig
from skillgate_core.errors import ConfigError, SkillNotFoundError
from skillgate_core.logging import configure_logging
from skillgate_engine import (
    DirectorySkillSource,
    LoadReport,
    SelectionPolicy,
    SkillEngine,
)

console = Console()

_PATHS_HELP = "Skill directories to load (defaults to sources.paths from config)"


def _build_engine(paths: list[str] | None) -> tuple[SkillEngine, LoadReport]:
    """Build an engine from config and load skills from *paths*.

    Exits with code 2 when the configuration is invalid.
    """
    try:
        config = SkillgateConfig.load()
        # Handlers stay as they are when --verbose already set them up
        configure_logging(config.logging)
        engine = SkillEngine(config)
    except ConfigError as exc:
        console.print(f"[red]Invalid config:[/red] {escape(str(exc))}")
        raise typer.Exit(2) from None

    source = DirectorySkillSource(paths or config.sources.paths)
    report = engine.load_skills(source)
    return engine, report


def _print_rejections(report: LoadReport) -> None:
    for rejection in report.rejected:
        label = rejection.name or f"record #{rejection.index}"
        console.print(
            f"[yellow]Rejected[/yellow] {escape(label)} "
            f"([dim]{rejection.reason.value}[/dim]): {escape(rejection.message)}"
        )


def skill_list(
    paths: list[str] | None = typer.Argument(None, help=_PATHS_HELP),
) -> None:
    """List all loaded skills."""
    engine, report = _build_engine(paths)
    _print_rejections(report)

    skills = list(engine.list_skills())
    if not skills:
        console.print(
            "[yellow]No skills found.[/yellow] "
            "Place SKILL.md files in ./skills/ or pass a directory."
        )
        raise typer.Exit(0)

    table = Table(
        title="Registered Skills",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Allowed tools")

    for record in skills:
        tools = ", ".join(record.allowed_tools) if record.allowed_tools else "-"
        table.add_row(escape(record.name), escape(record.description), escape(tools))

    console.print(table)
    console.print(f"\n[dim]{len(skills)} skill(s) loaded.[/dim]")


def skill_query(
    text: str = typer.Argument(..., help="Task description to match skills against"),
    paths: list[str] | None = typer.Argument(None, help=_PATHS_HELP),
    mode: str | None = typer.Option(
        None, "--mode", "-m", help="Selection mode: top1, topK or threshold"
    ),
    budget: int | None = typer.Option(
        None, "--budget", "-b", help="Maximum number of skills to activate"
    ),
    min_score: float | None = typer.Option(
        None, "--min-score", "-s", help="Minimum score a skill needs to qualify"
    ),
) -> None:
    """Rank skills for a task and show which would be activated."""
    engine, report = _build_engine(paths)
    _print_rejections(report)

    default = engine.default_policy
    try:
        policy = SelectionPolicy(
            mode=mode or default.mode,
            budget=default.budget if budget is None else budget,
            min_score=default.min_score if min_score is None else min_score,
        )
    except ConfigError as exc:
        console.print(f"[red]Invalid policy:[/red] {escape(str(exc))}")
        raise typer.Exit(2) from None

    result = engine.query(text, policy)

    table = Table(
        title=f"Ranking for: '{escape(text)}'",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Rank", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Matched terms")

    selected = set(result.skill_names)
    for candidate in result.candidates:
        name = escape(candidate.skill_name)
        if candidate.skill_name in selected:
            name = f"[green]{name}[/green]"
        table.add_row(
            str(candidate.rank),
            name,
            f"{candidate.score:.3f}",
            ", ".join(candidate.matched_terms) or "-",
        )
    console.print(table)

    if result:
        console.print(
            f"\n[bold]Activated ({policy.mode.value}):[/bold] "
            + escape(", ".join(result.skill_names))
        )
    else:
        console.print("\n[yellow]No applicable skill.[/yellow]")

    if result.overflow is not None:
        console.print(f"[yellow]Budget overflow:[/yellow] {escape(str(result.overflow))}")

    for token in result:
        engine.release(token)


def skill_check(
    name: str = typer.Argument(..., help="Name of the skill to activate"),
    tool: str = typer.Argument(..., help="Tool the skill wants to invoke"),
    paths: list[str] | None = typer.Argument(None, help=_PATHS_HELP),
) -> None:
    """Check whether a skill may invoke a tool. Exits 1 when denied."""
    engine, report = _build_engine(paths)
    _print_rejections(report)

    try:
        token = engine.activate(name)
    except SkillNotFoundError:
        console.print(f"[red]Skill not found:[/red] '{escape(name)}'")
        available = engine.registry.snapshot().names
        if available:
            console.print(
                f"[dim]Available skills: {escape(', '.join(sorted(available)))}[/dim]"
            )
        raise typer.Exit(1) from None

    decision = engine.authorize(token, tool)
    engine.release(token)

    if decision.allowed:
        console.print(f"[green]Allowed[/green] {escape(tool)} for {escape(name)}")
    else:
        console.print(
            f"[red]Denied[/red] {escape(tool)} for {escape(name)}: {decision.reason.value}"
        )
    console.print(f"[dim]{escape(engine.gate.catalog.describe(tool))}[/dim]")

    if decision.denied:
        raise typer.Exit(1)
