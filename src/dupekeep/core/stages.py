"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Concurrent hashing and retention enforcement stages of the pipeline.

HASH STAGE
----------
Only size buckets with two or more members can hold duplicates, so only their
unhashed members are hashed. A fixed pool of worker threads drains a bounded
queue; the control flow feeds it, then posts one sentinel per worker and joins
them all before returning (completion barrier).
  • Digest assignment and hash-bucket insertion happen under the index lock
  • A record that already has a digest is skipped without I/O
  • A read error is logged and the file sits out this run; the pool continues
  • Stop requests are polled before each work item; a read in progress finishes,
    after which workers drain the queue without touching the disk

ENFORCE STAGE
-------------
Runs on the control flow only. Every hash bucket with two or more members is
evaluated by the RuleEngine, in digest order, and marked members are handed to
the Deleter one at a time. A member counts as processed once marked, even if its
deletion fails, so a run never retries the same file.
"""

import queue
import time
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Callable

from dupekeep.core.cancel import CancellationToken
from dupekeep.core.deleter import Deleter, DeleteOutcome
from dupekeep.core.errors import ProcessStopped
from dupekeep.core.hasher import HasherImpl
from dupekeep.core.index import FileIndex
from dupekeep.core.interfaces import Hasher
from dupekeep.core.models import BucketDecision, FileRecord
from dupekeep.core.rules import RuleEngine

logger = logging.getLogger(__name__)

_SENTINEL = object()


@dataclass
class HashResult:
    dispatched: int = 0
    hashed: int = 0
    skipped: int = 0
    failed: List[str] = field(default_factory=list)
    duration: float = 0.0


@dataclass
class EnforceResult:
    decisions: List[BucketDecision] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    would_delete: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    reclaimed_bytes: int = 0
    stopped: bool = False
    duration: float = 0.0


class HashStage:
    def __init__(self, workers: int, hasher: Hasher = None, queue_factor: int = 4):
        if workers < 1:
            raise ValueError("Worker count must be at least 1")
        self.workers = workers
        self.hasher = hasher or HasherImpl()
        self.queue_size = workers * queue_factor

    def process(
            self,
            index: FileIndex,
            token: Optional[CancellationToken] = None,
            progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> HashResult:
        """
        Hashes every candidate and files it into the hash index.

        Raises:
            ProcessStopped: A stop was requested; raised only after every worker has exited.
        """
        token = token or CancellationToken()
        result = HashResult()
        start_time = time.time()

        candidates = index.hash_candidates()
        if not candidates:
            logger.info("Nothing to hash")
            return result

        work: "queue.Queue" = queue.Queue(maxsize=self.queue_size)
        lock = threading.Lock()
        total = len(candidates)
        threads = [
            threading.Thread(
                target=self._worker,
                args=(work, index, token, result, lock, total, progress_callback),
                name=f"dupekeep-hasher-{n}",
                daemon=True,
            )
            for n in range(min(self.workers, total))
        ]
        for thread in threads:
            thread.start()

        try:
            for record in candidates:
                if token.is_stopped():
                    break
                work.put(record)
                result.dispatched += 1
        finally:
            for _ in threads:
                work.put(_SENTINEL)
            # wait for all workers to finish their work
            for thread in threads:
                thread.join()

        result.duration = time.time() - start_time
        logger.info(
            f"Hashed {result.hashed} of {result.dispatched} dispatched files "
            f"({len(result.failed)} failed) in {result.duration:.2f}s"
        )

        if token.is_stopped():
            raise ProcessStopped()
        return result

    def _worker(
            self,
            work: "queue.Queue",
            index: FileIndex,
            token: CancellationToken,
            result: HashResult,
            lock: threading.Lock,
            total: int,
            progress_callback: Optional[Callable[[str, int, object], None]]
    ) -> None:
        while True:
            record = work.get()
            if record is _SENTINEL:
                return

            # Stopped: keep draining so the producer never blocks, but do no more I/O
            if token.is_stopped():
                continue

            # hash already calculated and placed in the hash index
            if record.is_hashed:
                with lock:
                    result.skipped += 1
                continue

            logger.debug(f"  Calculating hash for {record.path}")
            try:
                digest = self.hasher.compute_full_hash(record)
                index.set_digest(record, digest)
            except OSError as e:
                logger.warning(f"hash {record.path}: {e}")
                with lock:
                    result.failed.append(record.path)
                continue
            except Exception:
                logger.exception(f"Unexpected error while hashing {record.path}")
                with lock:
                    result.failed.append(record.path)
                continue

            with lock:
                result.hashed += 1
                done = result.hashed + len(result.failed)
            if progress_callback:
                # Callback errors never end the worker loop
                try:
                    progress_callback("Hashing", done, total)
                except Exception as e:
                    logger.warning(f"Error in progress callback: {e}")


class EnforceStage:
    def __init__(self, engine: RuleEngine, deleter: Deleter):
        self.engine = engine
        self.deleter = deleter

    def process(self, index: FileIndex, token: Optional[CancellationToken] = None) -> EnforceResult:
        """
        A stop request between two candidates ends the pass early with `stopped` set;
        everything done up to that point is kept in the result.
        """
        result = EnforceResult()
        start_time = time.time()

        try:
            for digest, records in index.duplicate_buckets():
                if token is not None:
                    token.raise_if_stopped()

                decision = self.engine.evaluate(digest, records)
                result.decisions.append(decision)
                logger.info(f"Found {len(decision.ordered)} elements for hash {digest.hex()}")

                for record, _ in decision.marked:
                    if token is not None:
                        token.raise_if_stopped()
                    self._apply(record, index, result)
        except ProcessStopped:
            logger.debug("Enforcement interrupted by stop request")
            result.stopped = True

        result.duration = time.time() - start_time
        return result

    def _apply(self, record: FileRecord, index: FileIndex, result: EnforceResult) -> None:
        outcome = self.deleter.delete(record, index)
        if outcome == DeleteOutcome.DRY_RUN:
            result.would_delete.append(record.path)
            result.reclaimed_bytes += record.size
        elif outcome == DeleteOutcome.DELETED:
            result.deleted.append(record.path)
            result.reclaimed_bytes += record.size
        else:
            result.failed.append(record.path)
