"""
Deterministic hashing for generated identifiers and change detection.

Two uses in the linker:

- **Security uids:** data tables are exposed under an opaque, stable name
  derived from their registry key (``compute_hash(key)``).
- **Directory proof:** the ``proof`` gate mode fingerprints the whole source
  tree (relative paths + file content digests) so a pass can be skipped when
  nothing changed even if modification times were touched.

Manifesto:
    Hashing must be:
    - **Deterministic:** Same inputs → same output, always
    - **Order-dependent:** (a, b) ≠ (b, a)
    - **Enumeration-independent:** directory entries are sorted before hashing

Examples:
    >>> compute_hash("a", "b") != compute_hash("b", "a")
    True
    >>> len(compute_hash("dataTables!users", length=16))
    16

Tags:
    hashing, idempotency, change-detection, conlink

Doc-Types:
    - API Reference
"""

import hashlib
from pathlib import Path
from typing import Any


def compute_hash(*values: Any, length: int = 32) -> str:
    """
    Compute deterministic hash from values.

    Joins the string representation of every value with ``|`` and returns
    the first ``length`` hex characters of the SHA-256 digest.

    Args:
        *values: Values to hash (converted to strings)
        length: Hex digest length (default 32 = 128 bits)

    Returns:
        Hex string of specified length
    """
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]


def directory_proof(root: Path, skip_hidden: bool = True) -> str:
    """
    Fingerprint a directory tree.

    Entries are visited in sorted order. Symbolic links contribute their
    relative path only, regular files their relative path and md5 digest.
    Unreadable files contribute a ``???`` digest instead of failing.
    Entries whose name starts with ``.`` are skipped when ``skip_hidden``
    (the generated output tree lives in such a folder).

    Returns:
        md5 hex digest of the collected proof string. A missing root yields
        the digest of the empty string.
    """
    chunks: list[str] = []

    def collect(current: Path) -> None:
        try:
            entries = sorted(current.iterdir(), key=lambda p: p.name)
        except (FileNotFoundError, PermissionError):
            return

        for entry in entries:
            if skip_hidden and entry.name.startswith("."):
                continue

            relative = entry.relative_to(root).as_posix()

            if entry.is_symlink():
                chunks.append(f"SYM_LINK:{relative}")
            elif entry.is_dir():
                collect(entry)
            elif entry.is_file():
                try:
                    digest = hashlib.md5(entry.read_bytes()).hexdigest()
                except OSError:
                    digest = "???"
                chunks.append(f"FILE:{relative}:{digest}")

    collect(root)
    return hashlib.md5("".join(chunks).encode()).hexdigest()


__all__ = ["compute_hash", "directory_proof"]
