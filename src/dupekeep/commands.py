"""
Unified command orchestrator for indexing and deduplication.
This is the SINGLE source of truth for the run sequence. The CLI only builds params
and renders the report.

State machine:
    IDLE → LOADED → INDEXED → HASHED → [ENFORCED] → PERSISTED → DONE

ENFORCED is skipped in index-only mode. A stop request observed after LOADED jumps
straight to the save (when an index path is configured) and then to DONE.
"""
import time
import logging
from typing import Optional, Callable

from dupekeep.core.cancel import CancellationToken
from dupekeep.core.deleter import Deleter
from dupekeep.core.errors import IndexNotFoundError, IndexStoreError, ProcessStopped
from dupekeep.core.index import FileIndex
from dupekeep.core.interfaces import FileSystem, Hasher, IndexStore
from dupekeep.core.models import DedupeParams, RunMode, RunReport, RunState
from dupekeep.core.rules import RuleEngine
from dupekeep.core.scanner import FileWalker
from dupekeep.core.stages import EnforceStage, HashStage
from dupekeep.core.validator import IndexValidator
from dupekeep.services.file_service import FileService
from dupekeep.services.index_store import PickleIndexStore

logger = logging.getLogger(__name__)


class DedupeCommand:
    """
    Orchestrates one run:
    1. Load the persisted index (if any) and revalidate it against the disk
    2. Walk the roots for new files
    3. Hash candidates of every size bucket with 2+ members
    4. Apply the retention policy (enforce mode only)
    5. Save the index (if an index path is configured)

    Usage:
        params = DedupeParams.from_strings(roots=["/photos"], rule="keep-first")
        token = CancellationToken()   # stop() it from a signal handler
        report = DedupeCommand().execute(params, token=token)
    """

    def __init__(
            self,
            fs: Optional[FileSystem] = None,
            hasher: Optional[Hasher] = None,
            store: Optional[IndexStore] = None,
    ):
        self._fs = fs
        self._hasher = hasher
        self._store = store
        self.state = RunState.IDLE
        self.index: Optional[FileIndex] = None

    def execute(
            self,
            params: DedupeParams,
            token: Optional[CancellationToken] = None,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
    ) -> RunReport:
        """
        Execute a run with the given parameters.

        Returns:
            RunReport; `stopped` is set when the run was cancelled.

        Raises:
            IndexStoreError: The persisted index exists but cannot be read.
        """
        token = token or CancellationToken()
        fs = self._fs or FileService(use_trash=params.use_trash)
        store = self._store
        if store is None and params.index_path:
            store = PickleIndexStore(params.index_path)

        report = RunReport()
        total_start_time = time.time()
        self._transition(RunState.IDLE, report)

        self.index = self._load(store, fs, report)
        self._transition(RunState.LOADED, report)

        try:
            self._run_stages(params, fs, token, report, progress_callback)
        except ProcessStopped:
            report.stopped = True
            logger.warning("Process was stopped, finishing up")
        finally:
            if store is not None:
                self._persist(store, report)
            report.stats.total_time = time.time() - total_start_time
            self._transition(RunState.DONE, report)

        return report

    def _load(self, store: Optional[IndexStore], fs: FileSystem, report: RunReport) -> FileIndex:
        if store is None:
            return FileIndex()

        try:
            index = store.read()
        except IndexNotFoundError:
            # ignore non-existent index
            logger.info("No stored index found, starting fresh")
            return FileIndex()

        result = IndexValidator(fs).process(index)
        report.stats.update_stage("validate", index.size_bucket_count, result.checked, result.duration)
        return index

    def _run_stages(
            self,
            params: DedupeParams,
            fs: FileSystem,
            token: CancellationToken,
            report: RunReport,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
    ) -> None:
        index = self.index

        walker = FileWalker(fs, excluded_dirs=params.excluded_dirs)
        scan = walker.scan(params.roots, index, token)
        report.new_files = scan.new_files
        report.stats.update_stage("walk", index.size_bucket_count, len(index), scan.duration)
        self._transition(RunState.INDEXED, report)

        hashing = HashStage(params.workers, hasher=self._hasher)
        hashed = hashing.process(index, token, progress_callback=progress_callback)
        report.hashed_files = hashed.hashed
        report.failed_hashes = len(hashed.failed)
        report.stats.update_stage("hash", index.hash_bucket_count, hashed.dispatched, hashed.duration)
        self._transition(RunState.HASHED, report)

        if params.mode == RunMode.INDEX_ONLY:
            return

        enforce = EnforceStage(RuleEngine(params.policy), Deleter(fs, dry_run=params.dry_run))
        enforced = enforce.process(index, token)
        report.decisions = enforced.decisions
        report.deleted = enforced.deleted
        report.would_delete = enforced.would_delete
        report.failed_deletions = enforced.failed
        report.reclaimed_bytes = enforced.reclaimed_bytes
        report.stats.update_stage(
            "enforce", len(enforced.decisions), report.marked_count, enforced.duration
        )
        if enforced.stopped:
            raise ProcessStopped()
        self._transition(RunState.ENFORCED, report)

    def _persist(self, store: IndexStore, report: RunReport) -> None:
        try:
            store.write(self.index)
        except IndexStoreError as e:
            logger.error(f"Failed to save index: {e}")
            report.persist_error = str(e)
            return
        self._transition(RunState.PERSISTED, report)

    def _transition(self, state: RunState, report: RunReport) -> None:
        logger.debug(f"State {self.state.value} → {state.value}")
        self.state = state
        report.state = state

