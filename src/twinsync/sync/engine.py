"""Core sync engine that orchestrates the full bidirectional sync cycle.

The ``SyncEngine`` ties together the tree view, comparator, resolver and
reconciler into a complete sync run.  It:

1. Walks the source and mirrors each file into the destination.
2. Walks the destination and mirrors each file into the source; files
   the first pass made identical are recognised and left alone.
3. Reconciles files that are still present on one side only.
4. Merges the per-pass counters and builds a ``SyncReport``.

Error handling is per-file: a single file's I/O failure is logged and
recorded, and the pass moves on to the next entry.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from twinsync.sync.models import (
    ConflictInfo,
    ConflictStrategy,
    OrphanDecision,
    PassOutcome,
    Resolution,
    RunStats,
    Side,
    SyncAction,
    SyncReport,
    SyncResult,
)
from twinsync.sync.reconciler import DeletionReconciler, orphan_policy
from twinsync.sync.resolver import (
    DecisionProvider,
    TerminalDecisionProvider,
    create_resolver,
)
from twinsync.sync.tree import make_tree
from twinsync.sync.walker import RelativeEntry

logger = logging.getLogger(__name__)


def _timestamp_suffix() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


class SyncEngine:
    """Synchronise two directory trees in both directions.

    Args:
        source: Validated source endpoint.
        destination: Validated destination endpoint.
        strategy: Conflict strategy for the run.
        dry_run: Simulate every mutation instead of performing it.
        exclude: Compiled pattern; matching relative paths are invisible.
        provider: Operator decisions for the ``prompt`` strategy.
            Defaults to a ``TerminalDecisionProvider``.
        stamp: Returns the suffix used to name keep-both duplicates.
    """

    def __init__(
        self,
        source: Path,
        destination: Path,
        strategy: ConflictStrategy = ConflictStrategy.PROMPT,
        *,
        dry_run: bool = False,
        exclude: re.Pattern | None = None,
        provider: DecisionProvider | None = None,
        stamp: Callable[[], str] = _timestamp_suffix,
    ) -> None:
        self.source = source
        self.destination = destination
        self.strategy = ConflictStrategy(strategy)
        self.dry_run = dry_run
        self.exclude = exclude
        self.stamp = stamp

        if self.strategy is ConflictStrategy.PROMPT and provider is None:
            provider = TerminalDecisionProvider()
        self.provider = provider

        self.tree = make_tree(dry_run)
        self.resolver = create_resolver(self.strategy, provider)
        self.reconciler = DeletionReconciler(
            self.tree, self.strategy, provider, is_ignored=self._is_ignored
        )

        self._seen: set[str] = set()
        self._excluded: set[str] = set()
        # Relative paths of keep-both duplicates made during this run
        self._reserved: set[str] = set()
        self._conflicted: set[str] = set()

    @classmethod
    def from_config(
        cls, config, provider: DecisionProvider | None = None
    ) -> SyncEngine:
        """Build an engine from a validated ``twinsync.config.Config``."""
        return cls(
            config.source,
            config.destination,
            config.strategy,
            dry_run=config.dry_run,
            exclude=config.exclude,
            provider=provider,
        )

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self) -> SyncReport:
        """Execute a full sync cycle.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        # Each run starts from the real trees, never a previous overlay
        self.tree = make_tree(self.dry_run)
        self.reconciler.tree = self.tree
        self._seen.clear()
        self._excluded.clear()
        self._reserved.clear()
        self._conflicted.clear()

        logger.info(
            "Syncing %s <-> %s (strategy=%s%s)",
            self.source,
            self.destination,
            self.strategy.value,
            ", dry run" if self.dry_run else "",
        )
        if self.dry_run:
            logger.info("Dry run: no files will be modified")

        forward = self.sync_direction(self.source, self.destination)
        backward = self.sync_direction(self.destination, self.source)
        orphans = self.reconciler.reconcile(self.source, self.destination)

        report = SyncReport(
            source=self.source,
            destination=self.destination,
            strategy=self.strategy,
            dry_run=self.dry_run,
            stats=forward.stats + backward.stats + orphans.stats,
            results=forward.results + backward.results + orphans.results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        for line in report.summary().splitlines():
            logger.info(line)
        return report

    # ------------------------------------------------------------------
    # Directional pass
    # ------------------------------------------------------------------

    def sync_direction(self, primary: Path, secondary: Path) -> PassOutcome:
        """Mirror every file under *primary* into *secondary*.

        Files missing from *secondary* are copied when the strategy's
        orphan policy for them is a plain copy; otherwise they are left
        for the reconciler.  Existing files are compared by content and
        conflicts are resolved with the configured resolver.
        """
        primary_side = (
            Side.SOURCE if primary == self.source else Side.DESTINATION
        )
        direction = f"{primary_side.value} -> {primary_side.other.value}"
        stats = RunStats()
        results: list[SyncResult] = []

        for entry in self.tree.iter_entries(primary):
            rel_path = entry.rel_path
            if rel_path in self._reserved:
                continue
            if self._is_excluded(rel_path):
                logger.info("Excluded %s", rel_path)
                if rel_path not in self._excluded:
                    self._excluded.add(rel_path)
                    stats = stats.bump(excluded=1)
                    results.append(
                        SyncResult(
                            rel_path=rel_path,
                            action=SyncAction.EXCLUDE,
                            direction=direction,
                            detail="matched exclude pattern",
                        )
                    )
                continue
            if rel_path not in self._seen:
                self._seen.add(rel_path)
                stats = stats.bump(processed=1)

            try:
                delta, result = self._sync_entry(
                    entry, secondary, primary_side, direction
                )
            except OSError as exc:
                logger.error("%s: %s", rel_path, exc)
                delta = RunStats(errors=1)
                result = SyncResult(
                    rel_path=rel_path,
                    action=SyncAction.ERROR,
                    direction=direction,
                    success=False,
                    error=str(exc),
                )
            stats = stats + delta
            if result is not None:
                results.append(result)

        return PassOutcome(stats=stats, results=results)

    def _sync_entry(
        self,
        entry: RelativeEntry,
        secondary: Path,
        primary_side: Side,
        direction: str,
    ) -> tuple[RunStats, SyncResult | None]:
        rel_path = entry.rel_path
        src_file = entry.path
        dst_file = entry.under(secondary)

        if not self.tree.exists(dst_file):
            policy = orphan_policy(self.strategy, primary_side)
            if policy is not OrphanDecision.COPY:
                logger.debug(
                    "%s missing from %s, left for reconciliation",
                    rel_path,
                    primary_side.other.value,
                )
                return RunStats(), None
            if self.tree.ensure_parent(dst_file):
                logger.info("Created directory %s", dst_file.parent)
            try:
                self.tree.copy(src_file, dst_file)
            except FileExistsError:
                logger.warning(
                    "%s appeared in %s during the run, not overwriting",
                    rel_path,
                    primary_side.other.value,
                )
                return RunStats(skipped=1), SyncResult(
                    rel_path=rel_path,
                    action=SyncAction.SKIP,
                    direction=direction,
                    detail="target appeared",
                )
            logger.info("Copied %s (%s)", rel_path, direction)
            return RunStats(copied=1), SyncResult(
                rel_path=rel_path, action=SyncAction.COPY, direction=direction
            )

        if self.tree.identical(src_file, dst_file):
            logger.info(
                "Identical, no action: %s",
                rel_path,
                extra={"verbose_only": True},
            )
            return RunStats(skipped=1), SyncResult(
                rel_path=rel_path, action=SyncAction.SKIP, direction=direction
            )

        if rel_path in self._conflicted:
            logger.debug("%s: conflict already handled this run", rel_path)
            return RunStats(), None

        return self._handle_conflict(entry, secondary, primary_side, direction)

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    def _handle_conflict(
        self,
        entry: RelativeEntry,
        secondary: Path,
        primary_side: Side,
        direction: str,
    ) -> tuple[RunStats, SyncResult]:
        if primary_side is Side.SOURCE:
            source_path, dest_path = entry.path, entry.under(secondary)
        else:
            source_path, dest_path = entry.under(secondary), entry.path

        conflict = ConflictInfo(
            rel_path=entry.rel_path,
            source_path=source_path,
            dest_path=dest_path,
            source_state=self.tree.state(source_path, with_digest=False),
            dest_state=self.tree.state(dest_path, with_digest=False),
        )
        self._conflicted.add(entry.rel_path)
        try:
            return self._apply_resolution(conflict, direction)
        except OSError as exc:
            logger.error("%s: %s", entry.rel_path, exc)
            return RunStats(conflicts=1, errors=1), SyncResult(
                rel_path=entry.rel_path,
                action=SyncAction.ERROR,
                direction=direction,
                success=False,
                error=str(exc),
            )

    def _apply_resolution(
        self, conflict: ConflictInfo, direction: str
    ) -> tuple[RunStats, SyncResult]:
        """Resolve *conflict* and carry out the outcome.

        The returned stats always count the conflict; an ``OSError``
        from resolving or copying propagates to the caller.
        """
        rel_path = conflict.rel_path
        source_path, dest_path = conflict.source_path, conflict.dest_path
        resolution = self.resolver.resolve(conflict)
        stats = RunStats(conflicts=1)

        if resolution is Resolution.SOURCE_WINS:
            self.tree.copy(source_path, dest_path, overwrite=True)
            logger.info("Updated %s in destination from source", rel_path)
            return stats.bump(copied=1), SyncResult(
                rel_path=rel_path,
                action=SyncAction.UPDATE,
                direction="source -> destination",
                detail=f"conflict resolved: {resolution.value}",
            )

        if resolution is Resolution.DEST_WINS:
            self.tree.copy(dest_path, source_path, overwrite=True)
            logger.info("Updated %s in source from destination", rel_path)
            return stats.bump(copied=1), SyncResult(
                rel_path=rel_path,
                action=SyncAction.UPDATE,
                direction="destination -> source",
                detail=f"conflict resolved: {resolution.value}",
            )

        if resolution is Resolution.KEEP_BOTH:
            self._keep_both(conflict)
            return stats.bump(skipped=1), SyncResult(
                rel_path=rel_path,
                action=SyncAction.KEEP_BOTH,
                direction=direction,
                detail=f"conflict resolved: {resolution.value}",
            )

        return stats.bump(skipped=1), SyncResult(
            rel_path=rel_path,
            action=SyncAction.CONFLICT,
            direction=direction,
            detail="conflict skipped",
        )

    def _keep_both(self, conflict: ConflictInfo) -> None:
        """Duplicate each side of *conflict* into the other endpoint."""
        stamp = self.stamp()
        src_copy = self.tree.disambiguate(conflict.dest_path, stamp, "src")
        dest_copy = self.tree.disambiguate(conflict.source_path, stamp, "dest")

        self.tree.copy(conflict.source_path, src_copy)
        self._reserved.add(src_copy.relative_to(self.destination).as_posix())
        logger.info(
            "Kept source copy of %s as %s", conflict.rel_path, src_copy
        )

        self.tree.copy(conflict.dest_path, dest_copy)
        self._reserved.add(dest_copy.relative_to(self.source).as_posix())
        logger.info(
            "Kept destination copy of %s as %s", conflict.rel_path, dest_copy
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_excluded(self, rel_path: str) -> bool:
        return self.exclude is not None and bool(self.exclude.search(rel_path))

    def _is_ignored(self, rel_path: str) -> bool:
        return rel_path in self._reserved or self._is_excluded(rel_path)
