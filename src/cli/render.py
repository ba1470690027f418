from __future__ import annotations

from datetime import timedelta

from rich import box as rich_box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pipeline.run_state import BuildOutcome, BuildState, StageStatus

# Console for CLI output (not shared with logging); follows sys.stdout.
RENDER = Console(soft_wrap=True)


OUTCOME_STYLE = {
    BuildOutcome.SUCCESS: "green",
    BuildOutcome.UNSTABLE: "yellow",
    BuildOutcome.FAILURE: "red",
}

_STATUS_STYLE = {
    StageStatus.OK: "green",
    StageStatus.NONZERO: "yellow",
    StageStatus.EXCEPTION: "red",
    StageStatus.SKIPPED: "dim",
}


def print_table(
    headers: list[str], rows: list[list[str | Text]], *, title: str | None = None
) -> None:
    if not rows:
        RENDER.print("(no results)")
        return

    table = Table(title=title, box=rich_box.SIMPLE_HEAVY)
    for h in headers:
        table.add_column(h)
    for row in rows:
        # plain strings are data, never markup
        table.add_row(*(c if isinstance(c, Text) else Text(str(c)) for c in row))
    RENDER.print(table)


def render_summary(state: BuildState, *, output_limit: int = 2000) -> None:
    duration = timedelta(seconds=int(state.runtime_seconds))
    style = OUTCOME_STYLE[state.outcome]

    header = Text.assemble(
        ("stagearr run summary\n", "bold"),
        ("Pipeline: ", "dim"),
        (f"{state.metadata.pipeline}  #{state.metadata.build_id}\n", ""),
        ("Outcome: ", "dim"),
        (state.outcome.value, f"bold {style}"),
        ("\nDuration: ", "dim"),
        (str(duration), ""),
    )
    RENDER.print(Panel(header, border_style=style, expand=False))

    table = Table(box=rich_box.SIMPLE_HEAVY)
    table.add_column("#", justify="right")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Exit", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Reason")

    for i, r in enumerate(state.results, start=1):
        table.add_row(
            str(i),
            r.name,
            Text(r.status.value, style=_STATUS_STYLE[r.status]),
            "" if r.exit_code is None else str(r.exit_code),
            f"{r.duration:.1f}s",
            r.reason or "",
        )
    RENDER.print(table)

    for r in state.failed_stages:
        out = r.display_output(output_limit)
        if out:
            title = Text(f"{r.name} (output tail)")
            RENDER.print(Panel(Text(out), title=title, border_style="dim"))

    failed_cleanup = [c for c in state.cleanup if not c.ok]
    if failed_cleanup:
        issues = ", ".join(f"{c.name} ({c.message})" for c in failed_cleanup)
        RENDER.print(Text(f"Cleanup issues: {issues}", style="dim"))
    if state.archived:
        RENDER.print(Text(f"Archived {len(state.archived)} artifact(s)", style="dim"))
    if state.missing_artifacts:
        missing = ", ".join(state.missing_artifacts)
        RENDER.print(Text(f"Not produced: {missing}", style="dim"))
