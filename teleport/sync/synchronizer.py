"""
teleport/sync/synchronizer.py

EventSynchronizer: restartable, checkpointed block-range scanner.

State machine:
    stopped ─run()─▶ syncing ─caught up─▶ synced ─new blocks─▶ syncing ...
    any ─stop()─▶ stopped

run() loop, per iteration:
  1. Read the tip; safe = tip - save_distance_from_tip
  2. to = min(from + blocks_per_batch, safe + 1)          (exclusive)
  3. from == to → nothing to do
  4. else, in ONE database transaction:
         sync(session, from, to)
         upsert checkpoint (name, domain) → to
     failure → rollback both, log, wait, retry the identical range
  5. from = to
  6. to == safe + 1 → synced, wait tip_sync_delay

Checkpoints for one (name, domain) therefore advance in strictly
increasing, gap-free, non-overlapping steps. sync() must be idempotent:
a range observed but not committed before a crash is replayed.

stop() is observed at the top of the loop; an in-flight batch and its
checkpoint always finish first.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping, Optional, Union

from sqlalchemy.orm import Session

from teleport.config import SynchronizerConfig, SyncOptions
from teleport.core.exceptions import StaleChainStateError, SyncPersistenceError
from teleport.sync.chain import BlockchainClient
from teleport.sync.store import SyncStatus, SyncStatusRepository

logger = logging.getLogger(__name__)


class SynchronizerState(str, Enum):
    STOPPED = "stopped"
    SYNCING = "syncing"
    SYNCED  = "synced"


class EventSynchronizer(ABC):

    def __init__(
        self,
        blockchain:        BlockchainClient,
        status_repository: SyncStatusRepository,
        domain_name:       str,
        starting_block:    int,
        blocks_per_batch:  int,
        options:           Optional[Union[SyncOptions, Mapping[str, Any]]] = None,
        sync_name:         Optional[str] = None,
    ) -> None:
        if blocks_per_batch < 1:
            raise ValueError("blocks_per_batch must be positive")
        self.blockchain        = blockchain
        self.status_repository = status_repository
        self.domain_name       = domain_name
        self.starting_block    = starting_block
        self.blocks_per_batch  = blocks_per_batch
        self.options           = SyncOptions.merged(options)
        self.sync_name         = sync_name or type(self).__name__

        self._state_lock = threading.Lock()
        self._state      = SynchronizerState.STOPPED
        self._wakeup     = threading.Event()

    @classmethod
    def from_config(
        cls,
        blockchain:        BlockchainClient,
        status_repository: SyncStatusRepository,
        config:            SynchronizerConfig,
        **collaborators:   Any,
    ) -> "EventSynchronizer":
        """
        Build from one `synchronizers:` entry. The entry name becomes the
        checkpoint name; collaborators are the subclass-specific arguments
        (on_teleport, inbound).
        """
        synchronizer = cls(
            blockchain,
            status_repository,
            domain_name=      config.domain,
            starting_block=   config.starting_block,
            blocks_per_batch= config.blocks_per_batch,
            options=          config.options,
            **collaborators,
        )
        synchronizer.sync_name = config.name
        return synchronizer

    # ── State ─────────────────────────────────────────────────

    @property
    def state(self) -> SynchronizerState:
        with self._state_lock:
            return self._state

    def stop(self) -> None:
        with self._state_lock:
            self._state = SynchronizerState.STOPPED
        self._wakeup.set()

    def _set_syncing(self) -> None:
        with self._state_lock:
            self._state = SynchronizerState.SYNCING

    def _resume_syncing(self) -> None:
        # Never leaves STOPPED; stop() wins over new blocks.
        with self._state_lock:
            if self._state is SynchronizerState.SYNCED:
                self._state = SynchronizerState.SYNCING

    def _set_synced(self) -> None:
        with self._state_lock:
            if self._state is SynchronizerState.SYNCING:
                self._state = SynchronizerState.SYNCED

    # ── Loop ──────────────────────────────────────────────────

    def run(self) -> None:
        self._wakeup.clear()
        self._set_syncing()
        try:
            status = self.status_repository.find_by_name(self.sync_name, self.domain_name)
        except Exception:
            self.stop()
            raise
        from_block = status.block if status is not None else self.starting_block  # inclusive
        logger.info("[%s] Starting on %s at block %d", self.sync_name, self.domain_name, from_block)

        while self.state is not SynchronizerState.STOPPED:
            try:
                tip = self._read_safe_tip()
            except StaleChainStateError as exc:
                logger.warning("[%s] %s; retrying", self.sync_name, exc)
                self._pause()
                continue

            to_block = min(from_block + self.blocks_per_batch, tip + 1)  # exclusive
            if to_block < from_block:
                logger.warning(
                    "[%s] Tip %d is behind checkpoint %d; waiting",
                    self.sync_name, tip, from_block,
                )
                self._pause()
                continue

            if from_block != to_block:
                self._resume_syncing()
                logger.info(
                    "[%s] Syncing %d...%d (%d blocks)",
                    self.sync_name, from_block, to_block, to_block - from_block,
                )
                try:
                    self._commit_batch(from_block, to_block)
                except SyncPersistenceError:
                    logger.exception(
                        "[%s] Batch %d...%d discarded; will retry",
                        self.sync_name, from_block, to_block,
                    )
                    self._pause()
                    continue

            from_block = to_block
            if to_block == tip + 1:
                logger.debug("[%s] Syncing tip. Stalling...", self.sync_name)
                self._set_synced()
                self._pause()

        logger.info("[%s] Stopped on %s at block %d", self.sync_name, self.domain_name, from_block)

    def sync_once(self) -> None:
        """
        Run until the first time the tip is reached, then stop.
        For bounded test and demo use.
        """
        self._set_syncing()
        worker = threading.Thread(
            target=self._run_in_thread,
            name=f"{self.sync_name}-{self.domain_name}",
            daemon=True,
        )
        worker.start()
        poll = self.options.poll_interval / 1000
        while self.state is SynchronizerState.SYNCING and worker.is_alive():
            worker.join(poll)
        self.stop()
        worker.join()

    # ── Subclass hook ─────────────────────────────────────────

    @abstractmethod
    def sync(self, session: Session, from_block: int, to_block: int) -> None:
        """Process [from_block, to_block). Must be idempotent."""

    # ── Internal ──────────────────────────────────────────────

    def _run_in_thread(self) -> None:
        try:
            self.run()
        except Exception:
            logger.exception("[%s] Synchronizer crashed", self.sync_name)
            self.stop()

    def _read_safe_tip(self) -> int:
        try:
            latest = self.blockchain.get_latest_block_number()
        except Exception as exc:
            raise StaleChainStateError(f"Cannot read chain tip: {exc}") from exc
        if isinstance(latest, bool) or not isinstance(latest, int) or latest < 0:
            raise StaleChainStateError("Chain tip is not a block number", {"tip": latest})
        return latest - self.options.save_distance_from_tip

    def _commit_batch(self, from_block: int, to_block: int) -> None:
        try:
            with self.status_repository.transaction() as session:
                self.sync(session, from_block, to_block)
                self.status_repository.upsert(
                    SyncStatus(name=self.sync_name, domain=self.domain_name, block=to_block),
                    session,
                )
        except Exception as exc:
            raise SyncPersistenceError(
                f"Batch {from_block}...{to_block} not committed: {exc}",
                {"synchronizer": self.sync_name, "domain": self.domain_name},
            ) from exc

    def _pause(self) -> None:
        """Wait tip_sync_delay, or less if stop() is called."""
        self._wakeup.wait(self.options.tip_sync_delay / 1000)
