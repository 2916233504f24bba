"""Rendering of ``SyncReport`` objects for people and for machines.

- ``format_sync_report`` -- the summary printed after a run.
- ``format_dry_run_preview`` -- planned changes grouped by action.
- ``report_to_json`` -- plain dict ready for ``json.dumps``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from .models import SyncAction

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult

# Preview groups in display order; SKIP is only counted
_PREVIEW_GROUPS = (
    SyncAction.COPY,
    SyncAction.UPDATE,
    SyncAction.DELETE,
    SyncAction.KEEP_BOTH,
    SyncAction.CONFLICT,
    SyncAction.ERROR,
)


def _with_direction(result: SyncResult) -> str:
    return f"{result.rel_path} ({result.direction})"


def _path_only(result: SyncResult) -> str:
    return result.rel_path


def _with_error(result: SyncResult) -> str:
    return f"{result.rel_path}: {result.error}"


def _section(
    title: str,
    results: list[SyncResult],
    describe: Callable[[SyncResult], str],
) -> list[str]:
    if not results:
        return []
    return [f"{title}:", *(f"  {describe(r)}" for r in results), ""]


def format_sync_report(report: SyncReport) -> str:
    """Render the post-run summary.

    Identical files only show up in the skipped count.  Every other
    section is printed when it has at least one entry.
    """
    title = f"Sync report: {report.source} <-> {report.destination}"
    if report.dry_run:
        title += " (DRY RUN)"
    lines = [
        title,
        f"Strategy: {report.strategy.value}",
        f"Started: {report.started_at}",
    ]
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    s = report.stats
    lines.append(
        f"Processed {s.processed} files: "
        f"{s.copied} copied/updated, {s.deleted} deleted, "
        f"{s.conflicts} conflicts, {s.skipped} skipped"
    )
    if s.excluded or s.errors:
        lines.append(f"Excluded: {s.excluded}, errors: {s.errors}")
    lines.append("")

    lines += _section("Copied", report.copied, _with_direction)
    lines += _section("Updated", report.updated, _with_direction)
    lines += _section("Deleted", report.deleted, _with_direction)
    lines += _section("Kept both", report.kept_both, _path_only)
    lines += _section("Unresolved conflicts", report.conflicts, _path_only)
    lines += _section("Errors", report.errors, _with_error)

    return "\n".join(lines).rstrip()


def format_dry_run_preview(report: SyncReport) -> str:
    """Render the decisions of a dry run as ``[ACTION]`` groups.

    Args:
        report: Report of a run made with ``dry_run=True``.
    """
    lines = [
        "DRY RUN -- No changes will be made",
        f"{report.source} <-> {report.destination}",
        "",
    ]

    changes = 0
    for action in _PREVIEW_GROUPS:
        group = [r for r in report.results if r.action is action]
        if not group:
            continue
        changes += len(group)
        lines.append(f"[{action.value.upper().replace('_', ' ')}]")
        lines += [f"  {_with_direction(r)}" for r in group]
        lines.append("")

    skipped = len(report.skipped)
    if skipped:
        lines += [f"Skipped: {skipped} files", ""]
    if not changes:
        lines += ["No changes needed.", ""]

    return "\n".join(lines).rstrip()


def report_to_json(report: SyncReport) -> dict:
    """Flatten *report* into JSON-serialisable primitives.

    Results keep their run order; ``detail`` and ``error`` appear only
    when set.
    """
    results = []
    for r in report.results:
        item: dict = {
            "path": r.rel_path,
            "action": r.action.value,
            "direction": r.direction,
            "success": r.success,
        }
        if r.detail:
            item["detail"] = r.detail
        if r.error:
            item["error"] = r.error
        results.append(item)

    return {
        "source": str(report.source),
        "destination": str(report.destination),
        "strategy": report.strategy.value,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": report.stats.model_dump(),
        "results": results,
    }
