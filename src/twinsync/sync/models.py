"""Pydantic models for the bidirectional sync engine.

Defines the core data contracts used across all sync modules:

- ``ConflictStrategy``: How conflicts and orphans are resolved.
- ``Resolution``: Outcome of resolving one conflict.
- ``OrphanDecision``: Outcome of reconciling one one-sided file.
- ``SyncAction``: What happened to one file in one stage.
- ``FileState``: Existence, digest and mtime of one concrete path.
- ``ConflictInfo`` / ``OrphanInfo``: Inputs to resolvers and prompts.
- ``RunStats``: Counters returned by each pass and merged per run.
- ``SyncResult``: Outcome of one decision.
- ``SyncReport``: Aggregate results for a full sync run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class ConflictStrategy(str, Enum):
    """Configured policy for conflicts and orphans."""

    PROMPT = "prompt"
    SOURCE_WINS = "source-wins"
    DEST_WINS = "dest-wins"
    NEWEST = "newest"
    KEEP_BOTH = "keep-both"


class Resolution(str, Enum):
    """Decided outcome of a conflict."""

    SOURCE_WINS = "source-wins"
    DEST_WINS = "dest-wins"
    KEEP_BOTH = "keep-both"
    SKIP = "skip"


class OrphanDecision(str, Enum):
    """Decided outcome for a file present on one side only."""

    DELETE = "delete"
    COPY = "copy"
    SKIP = "skip"


class Side(str, Enum):
    """One of the two endpoints."""

    SOURCE = "source"
    DESTINATION = "destination"

    @property
    def other(self) -> Side:
        if self is Side.SOURCE:
            return Side.DESTINATION
        return Side.SOURCE


class SyncAction(str, Enum):
    """What a stage did (or would do, in a dry run) to one file."""

    COPY = "copy"
    UPDATE = "update"
    SKIP = "skip"
    CONFLICT = "conflict"
    KEEP_BOTH = "keep_both"
    DELETE = "delete"
    EXCLUDE = "exclude"
    ERROR = "error"


class FileState(BaseModel):
    """Existence, content digest and modification time of one path.

    Attributes:
        exists: Whether a regular file is present.
        digest: SHA-256 hex digest of the content, if present.
        mtime: Modification time in seconds since the epoch, if present.
        size: Size in bytes, if present.
    """

    exists: bool
    digest: str | None = None
    mtime: float | None = None
    size: int | None = None

    model_config = {"frozen": True}


class ConflictInfo(BaseModel):
    """A relative path present on both sides with differing content.

    Attributes:
        rel_path: POSIX path relative to both endpoint roots.
        source_path: Absolute path under the source endpoint.
        dest_path: Absolute path under the destination endpoint.
        source_state: Current state of ``source_path``.
        dest_state: Current state of ``dest_path``.
    """

    rel_path: str
    source_path: Path
    dest_path: Path
    source_state: FileState
    dest_state: FileState

    model_config = {"frozen": True}


class OrphanInfo(BaseModel):
    """A relative path present on one side only.

    Attributes:
        rel_path: POSIX path relative to both endpoint roots.
        present_on: The side holding the file.
        present_path: Absolute path of the existing file.
        missing_path: Absolute path where the counterpart would live.
        state: Current state of ``present_path``.
    """

    rel_path: str
    present_on: Side
    present_path: Path
    missing_path: Path
    state: FileState

    model_config = {"frozen": True}

    @property
    def reference(self) -> Side:
        """The side the file is missing from."""
        return self.present_on.other


class RunStats(BaseModel):
    """Counters for one pass, or for a whole run once merged.

    Values are immutable; passes return their own instance and the run
    controller adds them together.
    """

    processed: int = 0
    copied: int = 0
    skipped: int = 0
    conflicts: int = 0
    deleted: int = 0
    excluded: int = 0
    errors: int = 0

    model_config = {"frozen": True}

    def __add__(self, other: RunStats) -> RunStats:
        return RunStats(
            **{
                name: getattr(self, name) + getattr(other, name)
                for name in RunStats.model_fields
            }
        )

    def bump(self, **increments: int) -> RunStats:
        """Return a copy with the named counters incremented."""
        return self.model_copy(
            update={
                name: getattr(self, name) + amount
                for name, amount in increments.items()
            }
        )


class SyncResult(BaseModel):
    """Result of one decision for one relative path.

    Attributes:
        rel_path: POSIX path relative to the endpoint roots.
        action: Sync action that was performed (or simulated).
        direction: Human-readable direction, e.g. ``source -> destination``.
        success: Whether the operation succeeded.
        detail: Extra information (resolution, reason for skipping).
        error: Error message if the operation failed.
    """

    rel_path: str
    action: SyncAction
    direction: str = ""
    success: bool = True
    detail: str | None = None
    error: str | None = None

    model_config = {"frozen": True}


class PassOutcome(BaseModel):
    """Counters and decisions produced by one pass."""

    stats: RunStats = RunStats()
    results: list[SyncResult] = []

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        source: Source endpoint root.
        destination: Destination endpoint root.
        strategy: Conflict strategy in effect.
        dry_run: Whether this was a dry-run (no changes applied).
        stats: Merged counters of all passes.
        results: Individual decisions in the order they were made.
        started_at: ISO 8601 timestamp when sync started.
        completed_at: ISO 8601 timestamp when sync completed.
    """

    source: Path
    destination: Path
    strategy: ConflictStrategy
    dry_run: bool = False
    stats: RunStats = RunStats()
    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_action(self, action: SyncAction) -> list[SyncResult]:
        return [r for r in self.results if r.action == action]

    @property
    def copied(self) -> list[SyncResult]:
        """Results where a missing file was created."""
        return self._with_action(SyncAction.COPY)

    @property
    def updated(self) -> list[SyncResult]:
        """Results where an existing file was overwritten by the winner."""
        return self._with_action(SyncAction.UPDATE)

    @property
    def deleted(self) -> list[SyncResult]:
        """Results where an orphan was removed."""
        return self._with_action(SyncAction.DELETE)

    @property
    def kept_both(self) -> list[SyncResult]:
        """Results where both sides of a conflict were duplicated."""
        return self._with_action(SyncAction.KEEP_BOTH)

    @property
    def conflicts(self) -> list[SyncResult]:
        """Results where a conflict was left unresolved."""
        return self._with_action(SyncAction.CONFLICT)

    @property
    def excluded(self) -> list[SyncResult]:
        """Results for paths hidden by the exclude pattern."""
        return self._with_action(SyncAction.EXCLUDE)

    @property
    def skipped(self) -> list[SyncResult]:
        """Results where no action was needed or chosen."""
        return self._with_action(SyncAction.SKIP)

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        """Format a human-readable summary of the sync run.

        Returns:
            Multi-line summary string with the run counters.
        """
        s = self.stats
        lines = [
            f"Sync {self.source} <-> {self.destination}"
            + (" (dry run)" if self.dry_run else ""),
            f"  Processed:      {s.processed}",
            f"  Copied/updated: {s.copied}",
            f"  Deleted:        {s.deleted}",
            f"  Conflicts:      {s.conflicts}",
            f"  Skipped:        {s.skipped}",
            f"  Excluded:       {s.excluded}",
            f"  Errors:         {s.errors}",
        ]
        return "\n".join(lines)
