"""
Snapshot Storage Module

File persistence for the ledger:
- SnapshotStore: load/save the manager snapshot as one JSON file
- AutoSaver: background thread saving on a fixed interval, on stop and
  (optionally) on SIGINT/SIGTERM
- open_manager: build a LedgerManager from a stored snapshot

Storage failures are logged and reported as None/False; they never raise
into the ledger.
"""

import json
import logging
import os
import signal
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from ..blockchain.clock import Clock
from ..config import LedgerConfig, SNAPSHOT_INTERVAL_SECONDS
from ..errors import InvalidArgumentError
from .manager import LedgerManager


logger = logging.getLogger(__name__)


class SnapshotStore:
    """JSON snapshot file on local disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read the snapshot.

        Returns:
            The decoded snapshot, or None if it is missing or unreadable
        """
        if not self.exists():
            logger.info("No existing snapshot at %s", self.path)
            return None
        try:
            with self.path.open('r', encoding='utf-8') as snapshot_file:
                data = json.load(snapshot_file)
        except (OSError, ValueError) as e:
            logger.error("Error loading snapshot %s: %s", self.path, e)
            return None
        logger.info("Loaded snapshot from %s", self.path)
        return data

    def save(self, data: Dict[str, Any]) -> bool:
        """
        Write the snapshot atomically (temp file, then rename).

        Returns:
            True on success
        """
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix='.tmp', dir=str(self.path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as tmp_file:
                json.dump(data, tmp_file, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving snapshot %s: %s", self.path, e)
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False
        logger.debug("Saved snapshot to %s", self.path)
        return True

    def reset(self) -> bool:
        """Delete the snapshot file if present."""
        try:
            if self.exists():
                self.path.unlink()
                logger.info("Removed snapshot %s", self.path)
        except OSError as e:
            logger.error("Error removing snapshot %s: %s", self.path, e)
            return False
        return True

    def stats(self) -> Dict[str, Any]:
        if not self.exists():
            return {'exists': False, 'size': 0, 'sizeKB': '0.00', 'modified': None}
        stat = self.path.stat()
        return {
            'exists': True,
            'size': stat.st_size,
            'sizeKB': f"{stat.st_size / 1024:.2f}",
            'modified': stat.st_mtime,
        }


class AutoSaver:
    """
    Periodically snapshot a manager to a store.

    export_snapshot() takes the manager's lock, so a save never captures a
    chain halfway through an append.
    """

    def __init__(
        self,
        manager: LedgerManager,
        store: SnapshotStore,
        interval: float = SNAPSHOT_INTERVAL_SECONDS
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._manager = manager
        self._store = store
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.saves = 0

    def save_now(self) -> bool:
        saved = self._store.save(self._manager.export_snapshot())
        if saved:
            self.saves += 1
        return saved

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.save_now()

    def start(self) -> 'AutoSaver':
        if self._thread is not None and self._thread.is_alive():
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='attendchain-autosave', daemon=True)
        self._thread.start()
        return self

    def stop(self, final_save: bool = True) -> bool:
        """Stop the thread; optionally write one last snapshot."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        return self.save_now() if final_save else True

    def install_signal_handlers(
        self,
        signals: Tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)
    ) -> Dict[int, Any]:
        """
        Save a final snapshot when the process receives a termination signal.

        Each handler stops the saver (writing one last snapshot) and then
        exits with status 0. Must be called from the main thread.

        Returns:
            The previously installed handlers, keyed by signal number
        """
        def handle(signum, frame):
            logger.info("Received signal %d; saving snapshot before exit", signum)
            self.stop()
            raise SystemExit(0)

        previous = {}
        for signum in signals:
            previous[signum] = signal.getsignal(signum)
            signal.signal(signum, handle)
        return previous

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> 'AutoSaver':
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def open_manager(
    store: SnapshotStore,
    config: Optional[LedgerConfig] = None,
    clock: Optional[Clock] = None
) -> LedgerManager:
    """
    Create a manager, importing the store's snapshot when there is one.

    A snapshot that cannot be imported is logged and a fresh ledger is
    returned instead.
    """
    config = config or LedgerConfig()
    data = store.load()
    if data is not None:
        try:
            return LedgerManager.from_snapshot(data, difficulty=config.difficulty, clock=clock)
        except InvalidArgumentError as e:
            logger.error("Ignoring unreadable snapshot %s: %s", store.path, e)
    return LedgerManager(difficulty=config.difficulty, clock=clock)
