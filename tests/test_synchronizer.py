"""
tests/test_synchronizer.py

EventSynchronizer checkpointing.

    CONTINUITY   committed ranges are gap-free, non-overlapping, increasing
    RETRY        a failed batch is retried with the identical range
    RESTART      a fresh instance resumes at the stored checkpoint
    TIP          synced state stalls tip_sync_delay, stop() interrupts it
    SAFETY       blocks within save_distance_from_tip are never processed
"""

import threading
import time

import pytest

from teleport.config import SyncOptions
from teleport.sync.chain import MemoryChain
from teleport.sync.store import SyncStatusRepository, create_store_engine
from teleport.sync.synchronizer import EventSynchronizer, SynchronizerState

FAST = {"tip_sync_delay": 10, "poll_interval": 10}


class RecordingSynchronizer(EventSynchronizer):
    """Records every attempted and committed range; can fail on demand."""

    def __init__(self, *args, fail_attempts=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.attempts = []
        self.fail_attempts = set(fail_attempts)

    def sync(self, session, from_block, to_block):
        self.attempts.append((from_block, to_block))
        if len(self.attempts) in self.fail_attempts:
            raise RuntimeError("simulated crash")


class FlakyChain(MemoryChain):
    """Fails the first n tip reads."""

    def __init__(self, failures):
        super().__init__("flaky")
        self.failures = failures

    def get_latest_block_number(self):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("rpc unavailable")
        return super().get_latest_block_number()


@pytest.fixture
def repo():
    return SyncStatusRepository(create_store_engine("sqlite://"))


@pytest.fixture
def chain():
    chain = MemoryChain("optimism")
    chain.mine(25)
    return chain


def _checkpoint(repo, name="RecordingSynchronizer", domain="OPT-GOE-A"):
    status = repo.find_by_name(name, domain)
    return status.block if status else None


def _committed(attempts, failed):
    return [r for i, r in enumerate(attempts, start=1) if i not in failed]


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


class TestContinuity:

    def test_batches_cover_every_block_once(self, chain, repo):
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST)
        sync.sync_once()

        assert sync.attempts == [(0, 10), (10, 20), (20, 26)]
        assert _checkpoint(repo) == 26
        assert sync.state is SynchronizerState.STOPPED

    def test_failed_batch_retries_identical_range(self, chain, repo):
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST, fail_attempts={1})
        sync.sync_once()

        assert sync.attempts[0] == sync.attempts[1] == (0, 10)
        committed = _committed(sync.attempts, {1})
        assert committed == [(0, 10), (10, 20), (20, 26)]
        assert _checkpoint(repo) == 26

    def test_failure_mid_way_keeps_earlier_checkpoint(self, chain, repo):
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST, fail_attempts={2, 3})
        sync.sync_once()

        assert sync.attempts[1:4] == [(10, 20)] * 3
        committed = _committed(sync.attempts, {2, 3})
        for prev, cur in zip(committed, committed[1:]):
            assert prev[1] == cur[0], "ranges must be contiguous"

    def test_starting_block_is_respected(self, chain, repo):
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 18, 5, FAST)
        sync.sync_once()
        assert sync.attempts == [(18, 23), (23, 26)]

    def test_domains_checkpoint_independently(self, chain, repo):
        RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 100, FAST).sync_once()
        other = RecordingSynchronizer(chain, repo, "ARB-GOE-A", 20, 100, FAST)
        other.sync_once()
        assert other.attempts == [(20, 26)]
        assert _checkpoint(repo, domain="ARB-GOE-A") == 26


class TestRestart:

    def test_new_instance_resumes_from_checkpoint(self, chain, repo):
        RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST).sync_once()
        chain.mine(5)

        resumed = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST)
        resumed.sync_once()

        assert resumed.attempts == [(26, 31)]
        assert _checkpoint(repo) == 31

    def test_nothing_new_means_no_batches(self, chain, repo):
        RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST).sync_once()
        idle = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST)
        idle.sync_once()
        assert idle.attempts == []

    def test_custom_sync_name_has_own_checkpoint(self, chain, repo):
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 100, FAST, sync_name="oracle-1")
        sync.sync_once()
        assert _checkpoint(repo, name="oracle-1") == 26
        assert _checkpoint(repo) is None


class TestTip:

    def test_stalls_at_tip_then_picks_up_new_blocks(self, chain, repo):
        sync = RecordingSynchronizer(
            chain, repo, "OPT-GOE-A", 0, 100,
            {"tip_sync_delay": 200, "poll_interval": 10},
        )
        worker = threading.Thread(target=sync.run, daemon=True)
        worker.start()
        try:
            assert _wait_for(lambda: sync.state is SynchronizerState.SYNCED)
            chain.mine(3)
            time.sleep(0.05)
            assert _checkpoint(repo) == 26, "new blocks wait for the stall to end"

            assert _wait_for(lambda: _checkpoint(repo) == 29)
            assert sync.attempts == [(0, 26), (26, 29)]
        finally:
            sync.stop()
            worker.join(5)
        assert not worker.is_alive()

    def test_stop_interrupts_stall(self, chain, repo):
        sync = RecordingSynchronizer(
            chain, repo, "OPT-GOE-A", 0, 100,
            {"tip_sync_delay": 60_000, "poll_interval": 10},
        )
        worker = threading.Thread(target=sync.run, daemon=True)
        worker.start()
        assert _wait_for(lambda: sync.state is SynchronizerState.SYNCED)

        started = time.monotonic()
        sync.stop()
        worker.join(5)
        assert not worker.is_alive()
        assert time.monotonic() - started < 5
        assert sync.state is SynchronizerState.STOPPED

    def test_unreadable_tip_is_retried(self, repo):
        chain = FlakyChain(failures=2)
        chain.mine(4)
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, FAST)
        sync.sync_once()
        assert sync.attempts == [(0, 5)]
        assert chain.failures == 0


class TestSafeDistance:

    def test_recent_blocks_are_left_alone(self, chain, repo):
        sync = RecordingSynchronizer(
            chain, repo, "OPT-GOE-A", 0, 10,
            dict(FAST, save_distance_from_tip=6),
        )
        sync.sync_once()
        assert sync.attempts == [(0, 10), (10, 20)]
        assert _checkpoint(repo) == 20

    def test_options_object_is_accepted(self, chain, repo):
        options = SyncOptions(tip_sync_delay=10, save_distance_from_tip=20, poll_interval=10)
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, options)
        sync.sync_once()
        assert sync.attempts == [(0, 6)]


class TestState:

    def test_initial_state_is_stopped(self, chain, repo):
        assert RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10).state is SynchronizerState.STOPPED

    def test_batch_size_must_be_positive(self, chain, repo):
        with pytest.raises(ValueError):
            RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 0)

    def test_default_options(self, chain, repo):
        sync = RecordingSynchronizer(chain, repo, "OPT-GOE-A", 0, 10, {"save_distance_from_tip": 2})
        assert sync.options == SyncOptions(tip_sync_delay=5_000, save_distance_from_tip=2, poll_interval=1_000)
