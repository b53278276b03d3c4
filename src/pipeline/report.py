# src/pipeline/report.py — v1
"""Human-readable rendering of a RunReport.

Used by the CLI and by document renderers that must mark sections whose
round is unavailable.
"""

from __future__ import annotations

from codebrief.config.rounds import ROUND_DEFINITIONS, ROUND_DOCUMENT_MAP
from codebrief.core.models import RoundDefinition, RoundOutcome, RoundStatus, RunReport
from codebrief.pipeline.dag_builder import downstream_of

_STATUS_LABELS = {
    RoundStatus.PENDING: "pending",
    RoundStatus.RUNNING: "running",
    RoundStatus.CACHED: "cached",
    RoundStatus.SUCCEEDED: "ok",
    RoundStatus.FAILED: "FAILED",
    RoundStatus.BLOCKED: "blocked",
    RoundStatus.CANCELLED: "cancelled",
}


def format_summary_table(report: RunReport) -> str:
    """One line per round with status, elapsed time and reason."""
    lines = [f"{'Round':<6} {'Name':<28} {'Status':<10} {'Time':>8}  Detail"]
    for round_id, outcome in sorted(report.outcomes.items()):
        detail = ""
        if outcome.status == RoundStatus.BLOCKED:
            detail = f"needs {', '.join(str(r) for r in outcome.blocked_by)}"
        elif outcome.status == RoundStatus.FAILED and outcome.error:
            detail = outcome.error
        lines.append(
            f"{round_id:<6} {outcome.name[:28]:<28} "
            f"{_STATUS_LABELS[outcome.status]:<10} "
            f"{outcome.elapsed_ms / 1000:>7.1f}s  {detail}".rstrip()
        )
    lines.append("")
    lines.append(
        f"{len(report.cached)} cached, {len(report.succeeded)} executed, "
        f"{len(report.failed)} failed, {len(report.blocked)} blocked "
        f"({report.provider_calls} provider calls, {report.elapsed_ms / 1000:.1f}s)"
    )
    return "\n".join(lines)


def unavailable_marker(outcome: RoundOutcome) -> str | None:
    """Inline note for a document section whose round has no result.

    Returns None when the round produced a result.
    """
    if outcome.status.has_result:
        return None
    if outcome.status == RoundStatus.BLOCKED:
        upstream = ", ".join(str(r) for r in outcome.blocked_by)
        return (
            f"> {outcome.name} is unavailable: it depends on round(s) {upstream}, "
            "which did not complete."
        )
    if outcome.status == RoundStatus.CANCELLED:
        return f"> {outcome.name} is unavailable: the run was cancelled."
    reason = outcome.error or "unknown error"
    return f"> {outcome.name} is unavailable: the analysis failed ({reason})."


def build_failure_report(
    report: RunReport, definitions: list[RoundDefinition] | None = None
) -> str | None:
    """Markdown report listing failed and blocked rounds.

    Failed rounds are reported as errors, each with the rounds it left
    without a result; blocked rounds are listed separately, so a reader
    can tell the root cause from its consequences.

    Args:
        report: Outcome of a run.
        definitions: Round declarations of the run (defaults to ROUND_DEFINITIONS).

    Returns:
        Markdown text, or None if every round has a result.
    """
    failed = [report.outcomes[r] for r in report.failed]
    blocked = [report.outcomes[r] for r in report.blocked]
    cancelled = [report.outcomes[r] for r in report.cancelled]
    if not (failed or blocked or cancelled):
        return None
    defs = ROUND_DEFINITIONS if definitions is None else definitions

    lines = ["# Analysis Report", ""]
    lines.append(
        "Some analysis rounds did not complete. The documents below are "
        "degraded or missing."
    )
    lines.append("")

    if failed:
        lines.append("## Failed rounds")
        lines.append("")
        for outcome in failed:
            document = ROUND_DOCUMENT_MAP.get(outcome.round_id, "unknown document")
            lines.append(
                f"- Round {outcome.round_id} ({outcome.name}): {outcome.error or 'unknown error'}"
            )
            lines.append(f"  - Affects: {document}")
            stalled = [
                r for r in sorted(downstream_of(defs, outcome.round_id))
                if r in report.outcomes and not report.outcomes[r].status.has_result
            ]
            if stalled:
                ids = ", ".join(str(r) for r in stalled)
                lines.append(f"  - Leaves round(s) {ids} without a result")
        lines.append("")

    if blocked:
        lines.append("## Blocked rounds")
        lines.append("")
        for outcome in blocked:
            document = ROUND_DOCUMENT_MAP.get(outcome.round_id, "unknown document")
            upstream = ", ".join(str(r) for r in outcome.blocked_by)
            lines.append(
                f"- Round {outcome.round_id} ({outcome.name}): not run, "
                f"upstream round(s) {upstream} did not complete"
            )
            lines.append(f"  - Affects: {document}")
        lines.append("")

    if cancelled:
        ids = ", ".join(str(o.round_id) for o in cancelled)
        lines.append(f"## Cancelled rounds\n\nRound(s) {ids} were not started.")
        lines.append("")

    lines.append("Re-run the analysis to retry; completed rounds are served from cache.")
    return "\n".join(lines)
