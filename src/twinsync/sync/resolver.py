"""Conflict resolution strategies for the sync engine.

Provides one resolver per configured strategy:

- ``SourceWinsResolver``: Always picks the source copy.
- ``DestWinsResolver``: Always picks the destination copy.
- ``NewestResolver``: Picks the strictly newer modification time; ties
  go to the destination.
- ``KeepBothResolver``: Keeps both copies (the engine duplicates each
  under the other endpoint with a disambiguated name).
- ``PromptResolver``: Asks a ``DecisionProvider``.

Decision providers abstract the operator so the engine never reads a
terminal itself:

- ``TerminalDecisionProvider``: Prints the choice and reads a line.
- ``ScriptedDecisionProvider``: Replays pre-recorded answers.

The ``create_resolver()`` factory maps strategy names to resolver
instances.
"""

from __future__ import annotations

import logging
import sys
from collections import deque
from datetime import datetime
from typing import Callable, Iterable, Protocol, TextIO

from twinsync.logger import CONFLICT
from twinsync.sync.models import (
    ConflictInfo,
    ConflictStrategy,
    FileState,
    OrphanDecision,
    OrphanInfo,
    Resolution,
)

logger = logging.getLogger(__name__)

# Operator answers accepted by the conflict prompt.  "newest" is mapped
# through ``NewestResolver``.
_CONFLICT_CHOICES: dict[str, str] = {
    "source": "source",
    "s": "source",
    "dest": "dest",
    "d": "dest",
    "newest": "newest",
    "n": "newest",
    "both": "both",
    "b": "both",
    "skip": "skip",
    "k": "skip",
}

_ORPHAN_CHOICES: dict[str, OrphanDecision] = {
    "delete": OrphanDecision.DELETE,
    "d": OrphanDecision.DELETE,
    "copy": OrphanDecision.COPY,
    "c": OrphanDecision.COPY,
    "skip": OrphanDecision.SKIP,
    "k": OrphanDecision.SKIP,
}


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class ConflictResolver(Protocol):
    """Protocol that all conflict resolvers must satisfy."""

    def resolve(self, conflict: ConflictInfo) -> Resolution:
        """Determine the resolution for a conflict.

        Args:
            conflict: Details about the conflicting source/destination pair.

        Returns:
            The ``Resolution`` the engine should apply.
        """
        ...  # pragma: no cover


class DecisionProvider(Protocol):
    """Source of operator decisions for the ``prompt`` strategy."""

    def decide_conflict(self, conflict: ConflictInfo) -> str:
        """Return the raw operator answer for a conflict."""
        ...  # pragma: no cover

    def decide_orphan(self, orphan: OrphanInfo) -> str:
        """Return the raw operator answer for a one-sided file."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Decision providers
# ---------------------------------------------------------------------------


def _describe(state: FileState) -> str:
    if not state.exists:
        return "missing"
    when = datetime.fromtimestamp(state.mtime or 0).strftime(
        "%Y-%m-%d %H:%M:%S"
    )
    return f"{state.size} bytes, modified {when}"


class TerminalDecisionProvider:
    """Ask the operator on the terminal.

    Details and the question itself are written to *stream* (stderr by
    default); *input_func* is only used to read the answer line, so
    stdout stays reserved for the report.  *input_func* defaults to
    ``input`` and is injectable for tests.
    """

    def __init__(
        self,
        input_func: Callable[[str], str] | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self._input = input_func or input
        self._stream = stream or sys.stderr

    def _ask(self, question: str) -> str:
        self._stream.write(question)
        self._stream.flush()
        return self._input("")

    def decide_conflict(self, conflict: ConflictInfo) -> str:
        print(f"\nConflict: {conflict.rel_path}", file=self._stream)
        print(
            f"  source:      {_describe(conflict.source_state)}",
            file=self._stream,
        )
        print(
            f"  destination: {_describe(conflict.dest_state)}",
            file=self._stream,
        )
        return self._ask("Keep [s]ource, [d]est, [n]ewest, [b]oth, or s[k]ip? ")

    def decide_orphan(self, orphan: OrphanInfo) -> str:
        print(
            f"\nOnly in {orphan.present_on.value}: {orphan.rel_path} "
            f"({_describe(orphan.state)})",
            file=self._stream,
        )
        return self._ask(
            f"[d]elete from {orphan.present_on.value}, "
            f"[c]opy to {orphan.reference.value}, or s[k]ip? "
        )


class ScriptedDecisionProvider:
    """Replay pre-recorded answers in order.

    Conflict and orphan answers are kept in separate queues so a test
    can script each stage independently.  Every question asked is
    recorded in ``asked``.
    """

    def __init__(
        self,
        conflicts: Iterable[str] = (),
        orphans: Iterable[str] = (),
    ) -> None:
        self._conflicts = deque(conflicts)
        self._orphans = deque(orphans)
        self.asked: list[str] = []

    def decide_conflict(self, conflict: ConflictInfo) -> str:
        self.asked.append(conflict.rel_path)
        if not self._conflicts:
            raise LookupError(
                f"No scripted conflict answer left for {conflict.rel_path}"
            )
        return self._conflicts.popleft()

    def decide_orphan(self, orphan: OrphanInfo) -> str:
        self.asked.append(orphan.rel_path)
        if not self._orphans:
            raise LookupError(
                f"No scripted orphan answer left for {orphan.rel_path}"
            )
        return self._orphans.popleft()


def parse_orphan_answer(answer: str, rel_path: str) -> OrphanDecision:
    """Map a raw orphan answer to a decision; unknown input skips."""
    decision = _ORPHAN_CHOICES.get(answer.strip().lower())
    if decision is None:
        logger.warning(
            "Unrecognised answer %r for %s, skipping", answer, rel_path
        )
        return OrphanDecision.SKIP
    return decision


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def _log_resolution(
    conflict: ConflictInfo, resolution: Resolution, strategy: str
) -> None:
    logger.log(
        CONFLICT,
        "%s: resolved %s (strategy=%s)",
        conflict.rel_path,
        resolution.value,
        strategy,
    )


class SourceWinsResolver:
    """Always resolve conflicts in favour of the source."""

    strategy = ConflictStrategy.SOURCE_WINS

    def resolve(self, conflict: ConflictInfo) -> Resolution:
        _log_resolution(conflict, Resolution.SOURCE_WINS, self.strategy.value)
        return Resolution.SOURCE_WINS


class DestWinsResolver:
    """Always resolve conflicts in favour of the destination."""

    strategy = ConflictStrategy.DEST_WINS

    def resolve(self, conflict: ConflictInfo) -> Resolution:
        _log_resolution(conflict, Resolution.DEST_WINS, self.strategy.value)
        return Resolution.DEST_WINS


class NewestResolver:
    """Pick the side with the strictly greater modification time.

    Equal times resolve to the destination.  This tie-break is a
    deliberate, documented policy; a missing time is an error rather
    than a guess.
    """

    strategy = ConflictStrategy.NEWEST

    @staticmethod
    def pick(conflict: ConflictInfo) -> Resolution:
        src_mtime = conflict.source_state.mtime
        dst_mtime = conflict.dest_state.mtime
        if src_mtime is None or dst_mtime is None:
            raise OSError(
                f"Modification time unavailable for {conflict.rel_path}"
            )
        if src_mtime > dst_mtime:
            return Resolution.SOURCE_WINS
        return Resolution.DEST_WINS

    def resolve(self, conflict: ConflictInfo) -> Resolution:
        resolution = self.pick(conflict)
        _log_resolution(conflict, resolution, self.strategy.value)
        return resolution


class KeepBothResolver:
    """Never pick a winner; both copies are preserved."""

    strategy = ConflictStrategy.KEEP_BOTH

    def resolve(self, conflict: ConflictInfo) -> Resolution:
        _log_resolution(conflict, Resolution.KEEP_BOTH, self.strategy.value)
        return Resolution.KEEP_BOTH


class PromptResolver:
    """Ask the operator through a ``DecisionProvider``.

    Unrecognised answers resolve to ``Resolution.SKIP`` with a warning;
    they never fall back to either side.
    """

    strategy = ConflictStrategy.PROMPT

    def __init__(self, provider: DecisionProvider) -> None:
        self.provider = provider

    def resolve(self, conflict: ConflictInfo) -> Resolution:
        answer = self.provider.decide_conflict(conflict)
        choice = _CONFLICT_CHOICES.get(answer.strip().lower())

        if choice == "source":
            resolution = Resolution.SOURCE_WINS
        elif choice == "dest":
            resolution = Resolution.DEST_WINS
        elif choice == "newest":
            resolution = NewestResolver.pick(conflict)
        elif choice == "both":
            resolution = Resolution.KEEP_BOTH
        elif choice == "skip":
            resolution = Resolution.SKIP
        else:
            logger.warning(
                "Unrecognised answer %r for %s, skipping",
                answer,
                conflict.rel_path,
            )
            resolution = Resolution.SKIP

        _log_resolution(conflict, resolution, self.strategy.value)
        return resolution


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[ConflictStrategy, type] = {
    ConflictStrategy.SOURCE_WINS: SourceWinsResolver,
    ConflictStrategy.DEST_WINS: DestWinsResolver,
    ConflictStrategy.NEWEST: NewestResolver,
    ConflictStrategy.KEEP_BOTH: KeepBothResolver,
}


def create_resolver(
    strategy: ConflictStrategy | str,
    provider: DecisionProvider | None = None,
) -> ConflictResolver:
    """Create a conflict resolver for the given strategy.

    Args:
        strategy: A ``ConflictStrategy`` or its string value.
        provider: Decision provider for the ``prompt`` strategy; defaults
            to a ``TerminalDecisionProvider``.

    Returns:
        A ``ConflictResolver`` implementation instance.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    try:
        strategy = ConflictStrategy(strategy)
    except ValueError:
        raise ValueError(
            f"Unknown conflict strategy: '{strategy}'. Valid strategies: "
            f"{sorted(s.value for s in ConflictStrategy)}"
        ) from None

    if strategy is ConflictStrategy.PROMPT:
        return PromptResolver(provider or TerminalDecisionProvider())
    return _STRATEGY_MAP[strategy]()  # type: ignore[return-value]
