"""Tool catalog: the tool names the permission gate recognizes."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# ── Built-in tools ────────────────────────────────────────────

# Tool names as they appear in a skill's ``allowed-tools`` header.
# Matching is exact; these are the canonical spellings.
BUILTIN_TOOLS: dict[str, str] = {
    # Filesystem
    "Read": "Read a file (path, offset, limit)",
    "Write": "Write content to a file (path, content)",
    "Edit": "Replace text inside a file (path, old, new)",
    "MultiEdit": "Apply several edits to one file",
    "NotebookEdit": "Edit a Jupyter notebook cell",
    "LS": "List directory contents (path)",
    "Glob": "Glob for files matching a pattern (pattern, path)",
    # Search
    "Grep": "Search file contents (pattern, path, glob)",
    # Shell / execution
    "Bash": "Execute a shell command (command, timeout)",
    # Network
    "WebFetch": "Fetch a URL and return its content",
    "WebSearch": "Search the web",
    # Agent bookkeeping
    "Task": "Delegate a sub-task to another agent",
    "TodoWrite": "Update the task list",
}


# ── Catalog ───────────────────────────────────────────────────


class ToolCatalog:
    """The set of tool names the gate knows about.

    A tool is known if it is built in (unless disabled), listed in the
    configured extras, or declared by any live skill. Anything else is
    an unknown tool, and the gate denies it.
    """

    def __init__(
        self,
        extra_tools: Iterable[str] | None = None,
        *,
        include_builtin: bool = True,
    ) -> None:
        names: set[str] = set(BUILTIN_TOOLS) if include_builtin else set()
        if extra_tools:
            names.update(t.strip() for t in extra_tools if t and t.strip())
        self._names = frozenset(names)

    @property
    def names(self) -> frozenset[str]:
        return self._names

    def knows(self, tool: str, declared: frozenset[str] = frozenset()) -> bool:
        """True if *tool* is built in, configured, or in *declared*."""
        if not tool:
            return False
        return tool in self._names or tool in declared

    @staticmethod
    def describe(tool: str) -> str:
        """Return a human-readable description for a tool."""
        return BUILTIN_TOOLS.get(tool, f"Tool: {tool}")
