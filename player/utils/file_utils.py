"""Safe file operations shared by the import and repair pipelines."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from player.utils.logger import get_logger

logger = get_logger("utils.file_utils")


def safe_copy(src: Path, dst: Path) -> Path:
    """Copy a file, creating parent directories as needed.

    An existing file at *dst* is overwritten.

    Args:
        src: Source file path.
        dst: Destination file path.

    Returns:
        The destination path.

    Raises:
        FileNotFoundError: If source does not exist.
        OSError: If copy fails.
    """
    if not src.exists():
        raise FileNotFoundError(f"Source file not found: {src}")

    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)
    logger.debug("Copied: %s -> %s", src, dst)
    return dst


def safe_move(src: Path, dst: Path) -> Path:
    """Move a file, creating parent directories as needed.

    Uses an atomic rename when source and destination share a filesystem.
    For cross-device moves the file is copied first and the source is only
    deleted once the destination exists with the same size.

    Args:
        src: Source file path.
        dst: Destination file path.

    Returns:
        The destination path.

    Raises:
        FileNotFoundError: If source does not exist.
        OSError: If move fails or integrity check fails after copy.
    """
    if not src.exists():
        raise FileNotFoundError(f"Source file not found: {src}")

    dst.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.replace(src, dst)
    except OSError:
        src_size = src.stat().st_size
        shutil.copy2(src, dst)

        if not dst.exists():
            raise OSError(
                f"Cross-device move failed: destination not created: {dst}"
            )
        dst_size = dst.stat().st_size
        if dst_size != src_size:
            try:
                dst.unlink()
            except OSError:
                pass
            raise OSError(
                f"Cross-device move failed: size mismatch "
                f"(src={src_size}, dst={dst_size}): {dst}"
            )
        src.unlink()

    logger.debug("Moved: %s -> %s", src, dst)
    return dst


def rebase(path: Path, old_root: Path, new_root: Path) -> Path:
    """Mirror *path* from under *old_root* to the same place under *new_root*.

    A path outside *old_root* keeps its full absolute structure, nested
    below *new_root* (``/elsewhere/a.mp3`` -> ``<new_root>/elsewhere/a.mp3``).

    Args:
        path: Absolute path to rebase.
        old_root: Root the path is expected to live under.
        new_root: Root of the mirrored tree.

    Returns:
        The mirrored path.
    """
    try:
        relative = path.relative_to(old_root)
    except ValueError:
        relative = path.relative_to(path.anchor) if path.anchor else path
    return new_root / relative


def remove_empty_dirs(root: Path, keep_root: bool = True) -> None:
    """Remove every empty directory under *root* (post-order).

    Children are visited before their parents so a directory emptied by the
    removal of its subdirectories is removed too. A directory that still
    holds files simply fails ``rmdir`` and is left alone; such failures are
    the expected case and are not reported.

    Args:
        root: Directory tree to prune.
        keep_root: If False, *root* itself is removed when it ends up empty.
    """
    if not root.is_dir():
        return

    try:
        children = list(root.iterdir())
    except OSError:
        return

    for child in children:
        if child.is_dir() and not child.is_symlink():
            remove_empty_dirs(child, keep_root=False)

    if keep_root:
        return
    try:
        root.rmdir()
    except OSError:
        pass


def has_any_file(root: Path) -> bool:
    """Check whether a directory tree contains at least one regular file.

    Args:
        root: Directory to inspect.

    Returns:
        True if any regular file exists below *root*.
    """
    if not root.is_dir():
        return False
    for _dirpath, _dirnames, filenames in os.walk(root):
        if filenames:
            return True
    return False
