"""Problem-file repair -- recovers durations by decoding, in parallel.

Files land in Problem/ when import could not determine their duration.
Repair decodes each one fully, writes the duration into its tag, and moves
it back into Import/ so the next import pass picks it up normally.
"""

from __future__ import annotations

import itertools
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from player.core.decoder import DurationDecoder, decode_duration
from player.core.metadata_reader import MetadataReader
from player.core.scanner import DirectoryScanner
from player.core.tag_writer import TagWriter
from player.models.config import RootPaths
from player.models.errors import TagWriteError
from player.utils.constants import (
    DEFAULT_REPAIR_WORKERS,
    MAX_DURATION_SECONDS,
    PROGRESS_POLL_INTERVAL_SECONDS,
)
from player.utils.file_utils import rebase, remove_empty_dirs, safe_move
from player.utils.logger import get_logger

logger = get_logger("core.repair")


@dataclass(frozen=True)
class RepairProgress:
    """Progress event emitted as each worker picks up a file.

    Attributes:
        current: 1-based count of files started so far.
        total: Number of candidate files.
        current_file: File the worker is about to repair.
    """

    current: int
    total: int
    current_file: Path


@dataclass(frozen=True)
class RepairResult:
    """A file whose duration was recovered and which is back in Import/."""

    path: Path
    duration: float
    moved_to: Path


@dataclass(frozen=True)
class RepairFailure:
    """A file that could not be repaired and stays in Problem/."""

    path: Path
    reason: str


@dataclass
class RepairReport:
    """Outcome of a repair run. Every candidate is in exactly one list."""

    successes: list[RepairResult] = field(default_factory=list)
    failures: list[RepairFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)


ProgressCallback = Callable[[RepairProgress], None]


class ProblemRepairer:
    """Repairs files in the problem tree using a pool of decode workers.

    Progress events are produced by the workers but delivered to the
    callback on the calling thread only, through a queue, so the callback
    never runs concurrently with itself.

    Usage:
        repairer = ProblemRepairer(paths, max_workers=4)
        report = repairer.repair_all(lambda p: print(p.current, p.total))
    """

    def __init__(
        self,
        paths: RootPaths,
        decoder: DurationDecoder | None = None,
        tag_writer: TagWriter | None = None,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the repairer.

        Args:
            paths: Directory layout to operate on.
            decoder: Full-decode duration function (pydub by default).
            tag_writer: Writer used to store the recovered duration.
            max_workers: Worker thread count. ``None`` uses the default
                (half of the CPU cores, minimum 2).
        """
        self._paths = paths
        self._decoder = decoder or decode_duration
        self._tag_writer = tag_writer or TagWriter()
        self._max_workers = max_workers or DEFAULT_REPAIR_WORKERS
        # Tags only: each worker decodes its own file exactly once.
        self._scanner = DirectoryScanner(MetadataReader(allow_decode=False))

    def repair_all(self, progress_callback: ProgressCallback | None = None) -> RepairReport:
        """Repair every readable file under Problem/.

        Args:
            progress_callback: Optional callback receiving a RepairProgress
                before each file is attempted. Always invoked on the calling
                thread.

        Returns:
            Successes and failures, in completion order.
        """
        report = RepairReport()
        problem_dir = self._paths.problem_dir
        if not problem_dir.is_dir():
            return report

        candidates = [scanned.file.path for scanned in self._scanner.scan(problem_dir)]
        total = len(candidates)
        if total == 0:
            remove_empty_dirs(problem_dir)
            return report

        logger.info("Repairing %d problem files with %d workers", total, self._max_workers)

        counter = itertools.count(1)
        counter_lock = threading.Lock()
        events: queue.Queue[RepairProgress] = queue.Queue()

        def _work(path: Path) -> RepairResult | RepairFailure:
            """Repair one file (runs inside a worker thread)."""
            with counter_lock:
                events.put(RepairProgress(current=next(counter), total=total, current_file=path))
            return self._repair_one(path)

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [pool.submit(_work, path) for path in candidates]
            while True:
                try:
                    event = events.get(timeout=PROGRESS_POLL_INTERVAL_SECONDS)
                except queue.Empty:
                    if all(f.done() for f in futures):
                        break
                    continue
                if progress_callback:
                    progress_callback(event)

            for future, path in zip(futures, candidates):
                try:
                    outcome = future.result()
                except Exception as e:
                    logger.error("Repair worker crashed on %s: %s", path, e)
                    outcome = RepairFailure(path=path, reason=f"Unexpected error: {e}")
                if isinstance(outcome, RepairResult):
                    report.successes.append(outcome)
                else:
                    report.failures.append(outcome)

        remove_empty_dirs(problem_dir)

        logger.info(
            "Repair complete: %d repaired, %d failed",
            len(report.successes), len(report.failures),
        )
        return report

    # --- Private ---

    def _repair_one(self, path: Path) -> RepairResult | RepairFailure:
        """Decode, tag, and move one file. Never raises for expected failures."""
        duration = self._decoder(path)
        if duration is None or not (0 < duration < MAX_DURATION_SECONDS):
            logger.warning("Could not calculate duration by decoding: %s", path)
            return RepairFailure(path=path, reason="Could not calculate duration by decoding")

        try:
            self._tag_writer.backfill_duration(path, duration)
        except TagWriteError as e:
            logger.warning("%s", e)
            return RepairFailure(path=path, reason=f"Failed to write duration to file: {e.reason}")

        import_dest = rebase(path, self._paths.problem_dir, self._paths.import_dir)
        try:
            safe_move(path, import_dest)
        except OSError as e:
            logger.warning("Failed to move %s to Import: %s", path, e)
            return RepairFailure(path=path, reason=f"Failed to move to Import: {e}")

        logger.info("Repaired %s with duration %.0fs", import_dest, duration)
        return RepairResult(path=path, duration=duration, moved_to=import_dest)
