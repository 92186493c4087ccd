from __future__ import annotations

import typer
from skillgate_core import __version__
from skillgate_core.logging import setup_logging

from skillgate_cli.commands.skill import skill_check, skill_list, skill_query

app = typer.Typer(
    name="skillgate",
    help="Skillgate: select skills for a task and gate their tools",
    no_args_is_help=True,
)

app.command("list")(skill_list)
app.command("query")(skill_query)
app.command("check")(skill_check)


@app.callback()
def _root(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log engine activity to stderr"
    ),
) -> None:
    """Skillgate command line."""
    if verbose:
        setup_logging("DEBUG")


@app.command()
def version() -> None:
    """Show the Skillgate version."""
    from rich.console import Console
    Console().print(f"skillgate {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
