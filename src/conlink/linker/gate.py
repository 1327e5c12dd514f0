"""
Incremental rebuild gate.

Decides whether a pass is needed and records success afterwards.

    ===========  =======================================================
    gate_mode    a pass runs when
    ===========  =======================================================
    ``mtime``    something below ``src/`` is newer than ``.last_run``
    ``proof``    the content proof differs from ``.last_proof``
    ``off``      always
    ===========  =======================================================

``force`` (``CONLINK_FORCE=1``) and a missing output tree always run. The
markers are written only after a successful commit, so a failed pass is
retried next time.
"""

from __future__ import annotations

import time

from conlink.core.hashing import directory_proof
from conlink.core.logging import get_logger
from conlink.core.settings import LinkerSettings
from conlink.linker.fs import latest_mtime, write_text_if_mismatch
from conlink.linker.writer import LAST_PROOF_FILE, LAST_RUN_FILE

logger = get_logger(__name__)

GENERATED_INFIX = ".gen."


class IncrementalGate:
    def __init__(self, settings: LinkerSettings):
        self.settings = settings
        self.last_run_file = settings.output_src / LAST_RUN_FILE
        self.last_proof_file = settings.output_src / LAST_PROOF_FILE

    def read_last_run(self) -> int | None:
        """Timestamp (ms) of the last successful pass, if any."""
        try:
            return int(self.last_run_file.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None

    def should_run(self) -> bool:
        if self.settings.force:
            logger.info("linker_forced")
            return True

        mode = self.settings.gate_mode
        if mode == "off":
            return True

        if mode == "proof":
            try:
                stored = self.last_proof_file.read_text().strip()
            except FileNotFoundError:
                return True
            if stored != directory_proof(self.settings.src_root):
                return True
            logger.info("linker_skipped", reason="proof_unchanged")
            return False

        last_run = self.read_last_run()
        if last_run is None:
            return True

        newest = int(latest_mtime(self.settings.src_root, skip=(GENERATED_INFIX,)) * 1000)
        if newest > last_run:
            return True

        logger.info("linker_skipped", reason="no_change_since_last_run", last_run=last_run)
        return False

    def record_success(self, changed: bool = True) -> None:
        """
        Write ``.last_run`` (and ``.last_proof`` in proof mode).

        A pass that ran regardless of the markers (``force`` or ``off``) and
        changed nothing keeps the existing ones.
        """
        ungated = self.settings.force or self.settings.gate_mode == "off"
        if not changed and ungated and self.read_last_run() is not None:
            logger.debug("last_run_kept", reason="no_change")
            return

        write_text_if_mismatch(self.last_run_file, str(int(time.time() * 1000)))
        if self.settings.gate_mode == "proof":
            write_text_if_mismatch(self.last_proof_file, directory_proof(self.settings.src_root))


__all__ = ["GENERATED_INFIX", "IncrementalGate"]
