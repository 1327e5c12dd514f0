"""Filesystem helpers for the scanner and the marker fix step."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from conlink.core.errors import LinkerIOError
from conlink.core.logging import get_logger
from conlink.linker.markers import FixAction, MarkerEntry, MarkerFix

logger = get_logger(__name__)


@dataclass(frozen=True)
class DirEntry:
    name: str
    path: Path
    is_file: bool
    is_dir: bool
    is_symlink: bool

    def as_marker_entry(self) -> MarkerEntry:
        return MarkerEntry(name=self.name, is_file=self.is_file, is_symlink=self.is_symlink)


def list_entries(directory: Path) -> list[DirEntry]:
    """Children of ``directory`` sorted by name. A missing directory is empty."""
    try:
        children = sorted(directory.iterdir(), key=lambda p: p.name)
    except FileNotFoundError:
        return []
    except OSError as e:
        raise LinkerIOError(f"Can't list directory: {e}", path=str(directory), cause=e) from e

    return [
        DirEntry(
            name=child.name,
            path=child,
            is_file=child.is_file(),
            is_dir=child.is_dir(),
            is_symlink=child.is_symlink(),
        )
        for child in children
    ]


def resolve_file(directory: Path, candidates: Sequence[str]) -> Path | None:
    """First candidate name that exists as a regular file in ``directory``."""
    for name in candidates:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def write_text_if_mismatch(path: Path, content: str) -> bool:
    """
    Write ``content`` to ``path`` unless it already holds exactly that text.

    Returns:
        True when the file was written.
    """
    data = content.encode("utf-8")
    try:
        if path.read_bytes() == data:
            return False
    except FileNotFoundError:
        pass

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise LinkerIOError(f"Can't write file: {e}", path=str(path), cause=e) from e
    return True


def apply_fixes(fixes: Iterable[MarkerFix]) -> int:
    """
    Apply marker canonicalization fixes in order.

    Returns:
        Number of filesystem changes made. Zero on an already canonical tree.
    """
    changed = 0

    for fix in fixes:
        try:
            if fix.action is FixAction.RENAME:
                fix.path.rename(fix.target)
                logger.debug("marker_renamed", path=str(fix.path), target=fix.target.name)
                changed += 1
            elif fix.action is FixAction.REPLACE:
                write_text_if_mismatch(fix.target, fix.content)
                fix.path.unlink()
                logger.info("identity_created", path=str(fix.target))
                changed += 1
            elif write_text_if_mismatch(fix.path, fix.content):
                changed += 1
        except OSError as e:
            raise LinkerIOError(f"Can't update marker file: {e}", path=str(fix.path), cause=e) from e

    return changed


def rename_directory(path: Path, new_name: str) -> Path:
    """Rename a directory in place and return its new path."""
    target = path.with_name(new_name)
    try:
        path.rename(target)
    except OSError as e:
        raise LinkerIOError(f"Can't rename directory: {e}", path=str(path), cause=e) from e
    logger.info("identity_directory_created", path=str(target))
    return target


def latest_mtime(root: Path, skip: Iterable[str] = ()) -> float:
    """
    Most recent modification time (seconds) below ``root``.

    Directories count as well as files. Names starting with ``.`` and names
    containing any string of ``skip`` are not visited.
    """
    skip = tuple(skip)
    latest = 0.0

    for entry in list_entries(root):
        if entry.name.startswith(".") or any(s in entry.name for s in skip):
            continue
        try:
            mtime = entry.path.lstat().st_mtime
        except OSError:
            continue
        latest = max(latest, mtime)
        if entry.is_dir and not entry.is_symlink:
            latest = max(latest, latest_mtime(entry.path, skip))

    return latest


__all__ = [
    "DirEntry",
    "list_entries",
    "resolve_file",
    "write_text_if_mismatch",
    "apply_fixes",
    "rename_directory",
    "latest_mtime",
]
