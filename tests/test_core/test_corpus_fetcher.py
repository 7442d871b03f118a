"""Tests for the concurrent manifest fetcher."""

from __future__ import annotations

import threading
import time

import pytest

from manaudit.core.corpus_fetcher import ChannelClosed, CorpusFetcher, ResultChannel, WorkItem
from manaudit.core.ips import FileAction, Package
from manaudit.utils.errors import ExternalToolFailure

REPO = "/repo"


def fake_lister(repo: str, package: Package) -> list:
    """Return a single man page file action per package."""
    return [FileAction(path=f"usr/share/man/man1/{package.name}.1", attrs={})]


def make_fetcher(count: int, lister=fake_lister, group_size: int = 1) -> CorpusFetcher:
    fetcher = CorpusFetcher(lister)
    packages = [Package(f"pkg{n:03d}") for n in range(count)]
    for start in range(0, count, group_size):
        fetcher.append([WorkItem(REPO, p) for p in packages[start : start + group_size]])
    return fetcher


class TestResultChannel:
    """Test cases for the rendezvous channel."""

    def test_send_waits_for_receiver(self) -> None:
        channel: ResultChannel[int] = ResultChannel()
        delivered = threading.Event()

        def sender() -> None:
            channel.send(42)
            delivered.set()

        thread = threading.Thread(target=sender)
        thread.start()

        assert not delivered.wait(timeout=0.2)
        assert channel.recv() == 42
        assert delivered.wait(timeout=5)
        thread.join(timeout=5)

    def test_many_senders_complete_one_per_receive(self) -> None:
        """With several senders waiting, each receive completes exactly one send."""
        channel: ResultChannel[int] = ResultChannel()
        lock = threading.Lock()
        completed: list[int] = []

        def sender(value: int) -> None:
            channel.send(value)
            with lock:
                completed.append(value)

        threads = [threading.Thread(target=sender, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()

        time.sleep(0.2)
        assert completed == []

        received = []
        for count in range(1, 5):
            received.append(channel.recv())
            time.sleep(0.1)
            with lock:
                assert len(completed) == count

        for thread in threads:
            thread.join(timeout=5)
        assert sorted(received) == [0, 1, 2, 3]
        assert sorted(completed) == [0, 1, 2, 3]

    def test_close_ends_iteration(self) -> None:
        channel: ResultChannel[int] = ResultChannel()

        def sender() -> None:
            for n in range(3):
                channel.send(n)
            channel.close()

        thread = threading.Thread(target=sender)
        thread.start()

        assert list(channel) == [0, 1, 2]
        thread.join(timeout=5)

    def test_recv_after_close(self) -> None:
        channel: ResultChannel[int] = ResultChannel()
        channel.close()
        with pytest.raises(ChannelClosed):
            channel.recv()

    def test_send_after_close(self) -> None:
        channel: ResultChannel[int] = ResultChannel()
        channel.close()
        with pytest.raises(ChannelClosed):
            channel.send(1)

    def test_abort_releases_blocked_sender(self) -> None:
        channel: ResultChannel[int] = ResultChannel()
        errors: list[Exception] = []

        def sender() -> None:
            try:
                channel.send(1)
            except ChannelClosed as e:
                errors.append(e)

        thread = threading.Thread(target=sender)
        thread.start()
        thread.join(timeout=0.1)
        assert thread.is_alive()

        channel.abort()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert len(errors) == 1


class TestCorpusFetcher:
    """Test cases for CorpusFetcher."""

    @pytest.mark.parametrize(("groups", "workers"), [(1, 1), (10, 1), (10, 4), (25, 8)])
    def test_every_group_is_delivered_once(self, groups: int, workers: int) -> None:
        fetcher = make_fetcher(groups)

        with fetcher.run(workers) as run:
            batches = list(run)

        names = sorted(result.package.name for batch in batches for result in batch)
        assert names == [f"pkg{n:03d}" for n in range(groups)]
        assert len(batches) == groups
        assert sum(run.batches_by_worker.values()) == groups
        assert fetcher.pending() == 0

    def test_more_workers_than_groups(self) -> None:
        fetcher = make_fetcher(2)

        with fetcher.run(5) as run:
            batches = list(run)

        assert len(batches) == 2
        assert sorted(run.batches_by_worker) == ["w01", "w02", "w03", "w04", "w05"]
        assert sum(run.batches_by_worker.values()) == 2
        assert list(run.batches_by_worker.values()).count(0) >= 3

    def test_groups_are_delivered_together(self) -> None:
        fetcher = make_fetcher(9, group_size=3)

        with fetcher.run(2) as run:
            batches = list(run)

        assert sorted(len(batch) for batch in batches) == [3, 3, 3]
        for batch in batches:
            assert batch[0].actions[0].path.endswith(f"{batch[0].package.name}.1")

    def test_empty_stack(self) -> None:
        fetcher = CorpusFetcher(fake_lister)

        with fetcher.run(3) as run:
            assert list(run) == []

        assert run.batches_by_worker == {"w01": 0, "w02": 0, "w03": 0}

    def test_failure_is_propagated(self) -> None:
        def lister(repo: str, package: Package) -> list:
            if package.name == "pkg004":
                raise ExternalToolFailure("pkgrepo contents pkg004", "exit code 1")
            return fake_lister(repo, package)

        fetcher = make_fetcher(20, lister=lister)

        with pytest.raises(ExternalToolFailure, match="pkg004"):
            with fetcher.run(4) as run:
                for _ in run:
                    pass

    def test_failure_stops_remaining_work(self) -> None:
        """After the first failure no further groups are popped."""
        failed = threading.Event()
        lock = threading.Lock()
        calls: list[str] = []

        def lister(repo: str, package: Package) -> list:
            with lock:
                calls.append(package.name)
            # pkg019 is on top of the stack, so it is fetched first
            if package.name == "pkg019":
                failed.set()
                raise ExternalToolFailure("pkgrepo contents pkg019", "exit code 1")
            failed.wait(timeout=5)
            return fake_lister(repo, package)

        fetcher = make_fetcher(20, lister=lister)

        with pytest.raises(ExternalToolFailure, match="pkg019"):
            with fetcher.run(4) as run:
                for _ in run:
                    pass

        assert len(calls) < 20
        assert fetcher.pending() > 0
        assert not run._coordinator.is_alive()

    def test_fetcher_can_run_again(self) -> None:
        """Groups appended after a finished run are fetched by the next run."""
        fetcher = CorpusFetcher(fake_lister)

        fetcher.append([WorkItem(REPO, Package("first"))])
        with fetcher.run(2) as run:
            first = list(run)

        fetcher.append([WorkItem(REPO, Package("second"))])
        with fetcher.run(2) as run:
            second = list(run)

        assert [b[0].package.name for b in first] == ["first"]
        assert [b[0].package.name for b in second] == ["second"]
        assert fetcher.pending() == 0

    def test_fetcher_can_run_again_after_failure(self) -> None:
        def lister(repo: str, package: Package) -> list:
            if package.name == "bad":
                raise ExternalToolFailure("pkgrepo contents bad", "exit code 1")
            return fake_lister(repo, package)

        fetcher = CorpusFetcher(lister)
        fetcher.append([WorkItem(REPO, Package("bad"))])
        with pytest.raises(ExternalToolFailure):
            with fetcher.run(1) as run:
                list(run)

        fetcher.append([WorkItem(REPO, Package("good"))])
        with fetcher.run(1) as run:
            assert [b[0].package.name for b in run] == ["good"]

    def test_undelivered_batches_are_bounded_by_workers(self) -> None:
        """A worker holds at most one fetched batch until the consumer takes it."""
        workers = 4
        lock = threading.Lock()
        fetched: list[str] = []

        def lister(repo: str, package: Package) -> list:
            with lock:
                fetched.append(package.name)
            return fake_lister(repo, package)

        fetcher = make_fetcher(30, lister=lister)

        received = 0
        with fetcher.run(workers) as run:
            for _ in run:
                received += 1
                # Give blocked workers time to run ahead if the channel buffered
                time.sleep(0.02)
                with lock:
                    assert len(fetched) - received <= workers

        assert received == 30

    def test_consumer_error_releases_workers(self) -> None:
        fetcher = make_fetcher(20)

        with pytest.raises(RuntimeError):
            with fetcher.run(4) as run:
                for _ in run:
                    raise RuntimeError("stop")

        assert not run._coordinator.is_alive()

    def test_invalid_worker_count(self) -> None:
        with pytest.raises(ValueError):
            CorpusFetcher(fake_lister).run(0)
