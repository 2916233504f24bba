"""Reconciliation of files that exist on one side only.

Runs after both directional passes, so anything those passes copied is
already present on both sides and is never treated as an orphan here.

Policy per strategy for a file present on one side and missing from the
other (the *reference* side):

=============  =======================================================
prompt         ask: delete it / copy it to the reference side / skip
source-wins    present only in destination: delete;
               present only in source: copy to destination
dest-wins      present only in source: delete;
               present only in destination: copy to source
keep-both      copy
newest         copy (there is no counterpart to compare ages with)
=============  =======================================================
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from twinsync.sync.models import (
    ConflictStrategy,
    OrphanDecision,
    OrphanInfo,
    PassOutcome,
    RunStats,
    Side,
    SyncAction,
    SyncResult,
)
from twinsync.sync.resolver import DecisionProvider, parse_orphan_answer
from twinsync.sync.tree import LocalTree

logger = logging.getLogger(__name__)


def orphan_policy(
    strategy: ConflictStrategy, present_on: Side
) -> OrphanDecision | None:
    """Return the fixed decision for an orphan, or ``None`` to ask.

    Args:
        strategy: The run's conflict strategy.
        present_on: The side that holds the file.
    """
    if strategy is ConflictStrategy.PROMPT:
        return None
    if strategy is ConflictStrategy.SOURCE_WINS:
        if present_on is Side.DESTINATION:
            return OrphanDecision.DELETE
        return OrphanDecision.COPY
    if strategy is ConflictStrategy.DEST_WINS:
        if present_on is Side.SOURCE:
            return OrphanDecision.DELETE
        return OrphanDecision.COPY
    return OrphanDecision.COPY


class DeletionReconciler:
    """Find one-sided files and delete, copy or skip each one.

    Args:
        tree: Filesystem view shared with the directional passes.
        strategy: The run's conflict strategy.
        provider: Asked for every orphan under the ``prompt`` strategy.
        is_ignored: Returns ``True`` for relative paths that must stay
            invisible (excluded, or created by keep-both this run).
    """

    def __init__(
        self,
        tree: LocalTree,
        strategy: ConflictStrategy,
        provider: DecisionProvider | None = None,
        is_ignored: Callable[[str], bool] = lambda rel_path: False,
    ) -> None:
        if strategy is ConflictStrategy.PROMPT and provider is None:
            raise ValueError("The prompt strategy needs a decision provider")
        self.tree = tree
        self.strategy = strategy
        self.provider = provider
        self.is_ignored = is_ignored

    def reconcile(self, source: Path, destination: Path) -> PassOutcome:
        """Reconcile orphans of both endpoints.

        Scans the destination for files missing from the source first,
        then the source for files missing from the destination.
        """
        first = self._scan(destination, Side.DESTINATION, source)
        second = self._scan(source, Side.SOURCE, destination)
        return PassOutcome(
            stats=first.stats + second.stats,
            results=first.results + second.results,
        )

    def _scan(
        self, present_root: Path, present_on: Side, reference_root: Path
    ) -> PassOutcome:
        stats = RunStats()
        results: list[SyncResult] = []

        for entry in self.tree.iter_entries(present_root):
            if self.is_ignored(entry.rel_path):
                continue
            missing = entry.under(reference_root)
            try:
                if self.tree.exists(missing):
                    continue
                orphan = OrphanInfo(
                    rel_path=entry.rel_path,
                    present_on=present_on,
                    present_path=entry.path,
                    missing_path=missing,
                    state=self.tree.state(entry.path, with_digest=False),
                )
                delta, result = self._apply(orphan)
            except OSError as exc:
                logger.error("%s: %s", entry.rel_path, exc)
                delta = RunStats(errors=1)
                result = SyncResult(
                    rel_path=entry.rel_path,
                    action=SyncAction.ERROR,
                    direction=f"only in {present_on.value}",
                    success=False,
                    error=str(exc),
                )
            stats = stats + delta
            results.append(result)

        return PassOutcome(stats=stats, results=results)

    def _decide(self, orphan: OrphanInfo) -> OrphanDecision:
        decision = orphan_policy(self.strategy, orphan.present_on)
        if decision is not None:
            return decision
        answer = self.provider.decide_orphan(orphan)  # type: ignore[union-attr]
        return parse_orphan_answer(answer, orphan.rel_path)

    def _apply(self, orphan: OrphanInfo) -> tuple[RunStats, SyncResult]:
        decision = self._decide(orphan)
        label = f"only in {orphan.present_on.value}"

        if decision is OrphanDecision.DELETE:
            # The operator may have taken a while; look again.
            if self.tree.exists(orphan.missing_path):
                logger.warning(
                    "%s appeared in %s, not deleting",
                    orphan.rel_path,
                    orphan.reference.value,
                )
                return RunStats(skipped=1), SyncResult(
                    rel_path=orphan.rel_path,
                    action=SyncAction.SKIP,
                    direction=label,
                    detail="counterpart appeared",
                )
            self.tree.delete(orphan.present_path)
            logger.info(
                "Deleted %s from %s", orphan.rel_path, orphan.present_on.value
            )
            return RunStats(deleted=1), SyncResult(
                rel_path=orphan.rel_path,
                action=SyncAction.DELETE,
                direction=label,
            )

        if decision is OrphanDecision.COPY:
            if self.tree.ensure_parent(orphan.missing_path):
                logger.info("Created directory %s", orphan.missing_path.parent)
            try:
                self.tree.copy(orphan.present_path, orphan.missing_path)
            except FileExistsError:
                logger.warning(
                    "%s appeared in %s, not copying",
                    orphan.rel_path,
                    orphan.reference.value,
                )
                return RunStats(skipped=1), SyncResult(
                    rel_path=orphan.rel_path,
                    action=SyncAction.SKIP,
                    direction=label,
                    detail="target appeared",
                )
            logger.info(
                "Copied %s %s -> %s",
                orphan.rel_path,
                orphan.present_on.value,
                orphan.reference.value,
            )
            return RunStats(copied=1), SyncResult(
                rel_path=orphan.rel_path,
                action=SyncAction.COPY,
                direction=f"{orphan.present_on.value} -> "
                f"{orphan.reference.value}",
            )

        logger.info("Left %s %s", orphan.rel_path, label)
        return RunStats(skipped=1), SyncResult(
            rel_path=orphan.rel_path,
            action=SyncAction.SKIP,
            direction=label,
            detail="orphan skipped",
        )
