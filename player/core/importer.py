"""Library importer -- moves files from Import/ into the library tree.

Per file:
1. Read metadata (the source is untouched if this fails).
2. No duration: move the source to Problem/ and fail with NoDurationError.
3. Duration recovered only by decoding: write it into the source tag.
4. Copy the source into Music/, then move the original to Imported/.
5. Mint a Song pointing at the Music/ copy.

Copy happens before the move, so an interruption between the two leaves the
original in Import/ and the next run copies it again rather than losing it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from player.core import path_planner
from player.core.metadata_reader import MetadataReader, ScannedFile
from player.core.scanner import DirectoryScanner, SkipCallback
from player.core.tag_writer import TagWriter
from player.models.audio_file import AudioFile
from player.models.config import RootPaths
from player.models.errors import ImportFailure, IoFailureError, NoDurationError
from player.models.library import Library, Song
from player.utils.constants import UNKNOWN_TITLE
from player.utils.file_utils import remove_empty_dirs, safe_copy, safe_move
from player.utils.logger import get_logger

logger = get_logger("core.importer")


@dataclass
class ImportResult:
    """A file that made it into the library.

    Attributes:
        song: The new catalog entry (references ``library_path``).
        original_path: Where the file was found under Import/.
        library_path: The copy inside Music/.
        archived_path: Where the original now lives under Imported/.
    """

    song: Song
    original_path: Path
    library_path: Path
    archived_path: Path


ImportOutcome = ImportResult | ImportFailure


@dataclass
class ImportBatch:
    """One outcome per discovered file, in scan order."""

    outcomes: list[ImportOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ImportResult]:
        return [o for o in self.outcomes if isinstance(o, ImportResult)]

    @property
    def failed(self) -> list[ImportFailure]:
        return [o for o in self.outcomes if isinstance(o, ImportFailure)]

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def error_count(self) -> int:
        return len(self.failed)


class LibraryImporter:
    """Imports files from the Import tree into the library.

    Usage:
        importer = LibraryImporter(paths)
        batch = importer.import_all_pending(library)
    """

    def __init__(
        self,
        paths: RootPaths,
        reader: MetadataReader | None = None,
        tag_writer: TagWriter | None = None,
        on_skip: SkipCallback | None = None,
    ) -> None:
        """Initialize the importer.

        Args:
            paths: Directory layout to operate on.
            reader: Metadata reader (decoding enabled by default).
            tag_writer: Writer used to backfill decoded durations.
            on_skip: Optional hook for files the scan could not read.
        """
        self._paths = paths
        self._reader = reader or MetadataReader()
        self._tag_writer = tag_writer or TagWriter()
        self._scanner = DirectoryScanner(self._reader, on_skip=on_skip)

    def import_one(self, source_path: Path | str, next_id: int) -> ImportResult:
        """Import a single file under the given catalog identifier.

        Args:
            source_path: File to import.
            next_id: Identifier for the new song.

        Returns:
            The import result.

        Raises:
            ImportFailure: Any per-file failure. ``NoDurationError`` means the
                file has already been moved to the problem tree.
        """
        scanned = self._reader.read_path(Path(source_path).absolute())
        return self._import_scanned(scanned, next_id)

    def import_all_pending(self, library: Library) -> ImportBatch:
        """Import every readable file found under Import/.

        Identifiers continue from the largest song identifier in *library*
        and only advance on success. Each new song is added to *library*
        immediately. Empty directories left in Import/ are removed afterwards.

        Args:
            library: Catalog to add songs to.

        Returns:
            One outcome per discovered file.
        """
        batch = ImportBatch()
        import_dir = self._paths.import_dir

        try:
            import_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            batch.outcomes.append(IoFailureError(import_dir, e, operation="create directory"))
            return batch

        next_id = library.first_free_song_id
        for scanned in self._scanner.scan(import_dir):
            try:
                result = self._import_scanned(scanned, next_id)
            except ImportFailure as e:
                logger.warning("Import failed: %s", e)
                batch.outcomes.append(e)
                continue
            library.add_song(result.song)
            next_id += 1
            batch.outcomes.append(result)

        remove_empty_dirs(import_dir)

        logger.info(
            "Import complete: %d imported, %d failed",
            batch.success_count, batch.error_count,
        )
        return batch

    # --- Private ---

    def _import_scanned(self, scanned: ScannedFile, next_id: int) -> ImportResult:
        """Relocate an already-read file and build its Song."""
        source = scanned.file.path
        metadata = scanned.metadata

        if metadata.duration is None:
            problem_dest = path_planner.problem_path(
                source, self._paths.import_dir, self._paths.problem_dir,
            )
            try:
                safe_move(source, problem_dest)
            except OSError as e:
                raise IoFailureError(source, e, operation="move to Problem") from e
            logger.warning("No duration for %s, moved to %s", source.name, problem_dest)
            raise NoDurationError(source, problem_dest)

        if metadata.needs_backfill:
            self._tag_writer.try_backfill_duration(source, metadata.duration)

        library_dest = path_planner.library_path(
            metadata, scanned.file.format, self._paths.music_dir,
        )
        archive_dest = path_planner.archive_path(
            source, self._paths.import_dir, self._paths.imported_dir,
        )

        try:
            safe_copy(source, library_dest)
        except OSError as e:
            raise IoFailureError(source, e, operation="copy to Music") from e
        try:
            safe_move(source, archive_dest)
        except OSError as e:
            raise IoFailureError(source, e, operation="move to Imported") from e

        song = Song(
            id=next_id,
            file=AudioFile(path=library_dest, format=scanned.file.format),
            title=metadata.title or UNKNOWN_TITLE,
            artist=metadata.effective_artist,
            album=metadata.album,
            track_number=metadata.track_number,
            duration=metadata.duration,
        )
        logger.info("Imported [%d] %s -> %s", song.id, source.name, library_dest)
        return ImportResult(
            song=song,
            original_path=source,
            library_path=library_dest,
            archived_path=archive_dest,
        )
