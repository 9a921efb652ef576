"""
Status report rendering.

Pure presentation over results already collected by the orchestrator.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from eastdev.build.results import RepositoryState, StepResult, worst_outcome
from eastdev.core.timing import format_duration


def render_report(
    results: Sequence[StepResult],
    states: Sequence[RepositoryState],
    durations: Optional[Mapping[str, float]] = None,
) -> str:
    """Render per-repository branch, revision and worst outcome, then failures.

    Steps that do not apply to a repository (no CLI to link) do not affect
    its outcome. When ``durations`` is given, each row ends with the time
    spent on that repository.

    Example:
        Repository status:
          east        main @ 1a2b3c4d5e6f  success  12.4s
          east-node   main @ 9f8e7d6c5b4a  failed   1m 3.0s
          e3          (not cloned)         skipped

        Failures:
          east-node: build: make build exited 2: error TS2304: Cannot find name 'foo'
    """
    by_repo: dict[str, list[StepResult]] = {}
    for result in results:
        by_repo.setdefault(result.repository, []).append(result)
    durations = durations or {}

    name_width = max([len(state.name) for state in states] + [4]) + 2
    location_width = 0
    rows: list[tuple[str, str, str, str]] = []
    for state in states:
        if state.present:
            location = f"{state.current_branch} @ {state.current_revision}"
            if not state.working_tree_clean:
                location += " *"
        else:
            location = "(not cloned)"
        outcome = worst_outcome(by_repo.get(state.name, []))
        elapsed = format_duration(durations[state.name]) if state.name in durations else ""
        rows.append((state.name, location, outcome.value if outcome else "-", elapsed))
        location_width = max(location_width, len(location))

    lines = ["Repository status:"]
    for name, location, outcome, elapsed in rows:
        line = f"  {name:<{name_width}}{location:<{location_width + 2}}{outcome:<9}{elapsed}"
        lines.append(line.rstrip())

    failures = [result for result in results if result.failed]
    if failures:
        lines.append("")
        lines.append("Failures:")
        for result in failures:
            lines.append(f"  {result.repository}: {result.step.value}: {result.detail}")

    if any(not state.working_tree_clean for state in states if state.present):
        lines.append("")
        lines.append("* uncommitted changes")

    return "\n".join(lines)
