"""Directory scanner -- finds readable audio files under a root."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

from player.core.metadata_reader import MetadataReader, ScannedFile
from player.models.errors import ImportFailure
from player.utils.logger import get_logger

logger = get_logger("core.scanner")

# (path, error) for a file whose metadata could not be read
SkipCallback = Callable[[Path, ImportFailure], None]


class DirectoryScanner:
    """Walks a directory tree and reads metadata for every file in it.

    Files whose metadata cannot be read (unknown extension, missing tags,
    I/O errors) are left untouched and simply omitted from the result; they
    are retried on the next scan. Pass ``on_skip`` to observe them.

    Usage:
        scanner = DirectoryScanner(MetadataReader())
        files = scanner.scan(paths.import_dir)
    """

    def __init__(
        self,
        reader: MetadataReader | None = None,
        on_skip: SkipCallback | None = None,
    ) -> None:
        """Initialize the scanner.

        Args:
            reader: Metadata reader used for each file.
            on_skip: Optional diagnostic hook called for each skipped file.
        """
        self._reader = reader or MetadataReader()
        self._on_skip = on_skip

    def scan(self, root: Path | str) -> list[ScannedFile]:
        """Scan a directory tree and return every readable audio file.

        Traversal uses an explicit stack, so deep trees cannot exhaust the
        interpreter's recursion limit. Entries within one directory are
        visited in name order. Symlinked directories are not descended into.
        A root that does not exist yields nothing.

        Args:
            root: Root directory to scan.

        Returns:
            Successfully read files with absolute paths, in scan order.
        """
        root = Path(root).absolute()
        logger.info("Scanning directory: %s", root)

        found: list[ScannedFile] = []
        skipped = 0
        stack: list[Path] = [root]

        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                logger.debug("Cannot list %s: %s", current, e)
                continue

            for entry in entries:
                entry_path = Path(entry.path)
                try:
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(entry_path)
                        continue
                    if not entry.is_file():
                        continue
                except OSError:
                    continue

                try:
                    found.append(self._reader.read_path(entry_path))
                except ImportFailure as e:
                    skipped += 1
                    logger.debug("Skipping %s: %s", entry_path, e)
                    if self._on_skip:
                        self._on_skip(entry_path, e)

        logger.info("Scan complete: %d readable, %d skipped", len(found), skipped)
        return found
