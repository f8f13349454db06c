"""Rich-based build summary.

Renders one table per build group after a build:

    Source               Status
    core/Memory          compiled
    core/Runtime         cached
    core/Legacy          removed

followed by a footer line with the counts and the module state.
"""

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .build.orchestrator import BuildResult

_STATUS_STYLES = {
    "compiled": "bold cyan",
    "cached": "dim",
    "removed": "yellow",
}


def _module_text(result: BuildResult) -> Text:
    if result.module is None:
        return Text("module: not linked", style="dim")
    if result.linked:
        return Text(f"module: linked {result.module}", style="green")
    return Text(f"module: up to date {result.module}", style="dim")


def render_result(result: BuildResult, verbose: bool = False) -> Group:
    """Build the renderable summary for one group.

    Args:
        result: Result returned by BuildOrchestrator.build()
        verbose: List cached sources too; otherwise only changed ones

    Returns:
        A Rich Group with a header, a per-source table and a footer.
    """
    header = Text(f"\nGroup {result.group}", style="bold")

    table = Table(
        show_header=True,
        show_edge=False,
        show_lines=False,
        box=None,
        padding=(0, 1),
        expand=False,
    )
    table.add_column("Source", style="bold", no_wrap=True, min_width=28)
    table.add_column("Status", no_wrap=True)

    compiled = set(result.compiled)
    for source in result.sources:
        status = "compiled" if source.logical_name in compiled else "cached"
        if status == "cached" and not verbose:
            continue
        table.add_row(source.logical_name, Text(status, style=_STATUS_STYLES[status]))
    for name in result.pruned:
        table.add_row(name, Text("removed", style=_STATUS_STYLES["removed"]))

    parts = [f"{len(result.sources)} sources", f"{len(result.compiled)} compiled", f"{len(result.cached)} cached"]
    if result.pruned:
        parts.append(f"{len(result.pruned)} removed")
    footer = Text(f"  {', '.join(parts)}, {result.build_time:.2f}s", style="dim")

    return Group(header, table, footer, Text("  ").append_text(_module_text(result)))


def print_result(result: BuildResult, console: "Console | None" = None, verbose: bool = False) -> None:
    """Print the summary of one group."""
    console = console if console is not None else Console()
    console.print(render_result(result, verbose=verbose))
