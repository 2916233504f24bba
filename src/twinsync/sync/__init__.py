"""Bidirectional directory sync engine.

Public API for reconciling two locally mounted directory trees.

Architecture
------------
There is no sync database: every run rediscovers state from file content
and modification times.  A run is two directional passes followed by an
orphan reconciliation:

1. source -> destination: mirror new files, compare existing ones by
   SHA-256, resolve conflicts.
2. destination -> source: the same walk in reverse; files made identical
   by the first pass are left alone.
3. Files still present on one side only are deleted, copied or skipped
   according to the conflict strategy.

Modules:

- ``engine``      -- ``SyncEngine``: orchestrates a full sync run.
- ``comparator``  -- SHA-256 content comparison and file state.
- ``walker``      -- lazy ``RelativeEntry`` traversal of one tree.
- ``tree``        -- real and simulated (dry-run) filesystem views.
- ``resolver``    -- conflict strategies and decision providers.
- ``reconciler``  -- ``DeletionReconciler`` for one-sided files.
- ``models``      -- ``ConflictStrategy``, ``Resolution``, ``RunStats``,
  ``SyncResult``, ``SyncReport`` and friends.
- ``reporter``    -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from twinsync.sync import ConflictStrategy, SyncEngine, format_sync_report

    engine = SyncEngine(
        Path("/home/me/work"),
        Path("/mnt/backup/work"),
        ConflictStrategy.NEWEST,
        dry_run=True,
    )

    # Dry-run first to preview changes
    print(format_sync_report(engine.run()))
"""

from .comparator import identical
from .engine import SyncEngine
from .models import (
    ConflictInfo,
    ConflictStrategy,
    OrphanInfo,
    Resolution,
    RunStats,
    SyncAction,
    SyncReport,
    SyncResult,
)
from .reconciler import DeletionReconciler
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .resolver import (
    ScriptedDecisionProvider,
    TerminalDecisionProvider,
    create_resolver,
)

__all__ = [
    "ConflictInfo",
    "ConflictStrategy",
    "DeletionReconciler",
    "OrphanInfo",
    "Resolution",
    "RunStats",
    "ScriptedDecisionProvider",
    "SyncAction",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "TerminalDecisionProvider",
    "create_resolver",
    "format_dry_run_preview",
    "format_sync_report",
    "identical",
    "report_to_json",
]
