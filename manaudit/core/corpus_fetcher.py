"""Concurrent retrieval of package manifests from a repository.

Work groups sit on a shared stack guarded by a lock. A fixed number of
workers pop groups until the stack is empty, list the contents of every
package in the group, and hand the group's results to the consumer through
a rendezvous channel. A send only completes once the consumer has taken the
batch, so at most one batch is ever waiting regardless of the worker count.

The first failure cancels the run: the failing worker stops the others from
picking up new groups and passes the error to the consumer, which re-raises
it after releasing any worker still blocked on a send.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from manaudit.core.ips import Action, Package
from manaudit.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ContentLister = Callable[[str, Package], list[Action]]


@dataclass
class WorkItem:
    """One package to fetch."""

    repo: str
    package: Package


@dataclass
class WorkGroup:
    """Items fetched by the same worker and delivered as one batch."""

    items: list[WorkItem]


@dataclass
class ContentsResult:
    """Manifest actions of one package."""

    repo: str
    package: Package
    actions: list[Action] = field(default_factory=list)


@dataclass
class FetchFailure:
    """A worker's error, passed to the consumer in place of a batch."""

    worker: str
    error: Exception


class ChannelClosed(Exception):
    """Raised on send or receive once a channel is closed."""


class ResultChannel(Generic[T]):
    """
    Zero-capacity channel between many senders and one receiver.

    ``send`` blocks until the receiver has taken the value. ``close`` marks
    the end of the stream once all senders are done; ``abort`` is used by the
    receiver to give up and releases blocked senders with ``ChannelClosed``.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._item: T | None = None
        self._full = False
        self._sent = 0
        self._taken = 0
        self._closed = False
        self._aborted = False

    def send(self, item: T) -> None:
        """
        Hand ``item`` to the receiver, waiting until it has been received.

        Raises:
            ChannelClosed: If the channel is closed or the receiver aborted
        """
        with self._cond:
            while self._full and not self._aborted:
                self._cond.wait()
            if self._closed or self._aborted:
                raise ChannelClosed()

            self._item = item
            self._full = True
            self._sent += 1
            ticket = self._sent
            self._cond.notify_all()

            while self._taken < ticket and not self._aborted:
                self._cond.wait()
            if self._taken < ticket:
                raise ChannelClosed()

    def recv(self) -> T:
        """
        Wait for the next item.

        Raises:
            ChannelClosed: Once the channel is closed and no item is pending
        """
        with self._cond:
            while not self._full and not self._closed and not self._aborted:
                self._cond.wait()
            if not self._full:
                raise ChannelClosed()

            item = self._item
            self._item = None
            self._full = False
            self._taken += 1
            self._cond.notify_all()
            return item  # type: ignore[return-value]

    def close(self) -> None:
        """Mark the end of the stream; pending receives return ``ChannelClosed``."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def abort(self) -> None:
        """Stop receiving and release blocked senders."""
        with self._cond:
            self._aborted = True
            self._item = None
            self._full = False
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.recv()
            except ChannelClosed:
                return


Batch = list[ContentsResult]


class FetchRun:
    """
    Consumer side of a running fetch.

    Use as a context manager so that an early exit from the consuming loop
    (including an exception raised while handling a batch) cancels the
    remaining work and releases the workers::

        with fetcher.run(workers=8) as batches:
            for batch in batches:
                ...
    """

    def __init__(
        self,
        channel: ResultChannel[Batch | FetchFailure],
        coordinator: threading.Thread,
        cancel: threading.Event,
        batches_by_worker: dict[str, int],
    ) -> None:
        self._channel = channel
        self._coordinator = coordinator
        self._cancel = cancel
        self.batches_by_worker = batches_by_worker

    def __iter__(self) -> Iterator[Batch]:
        """
        Yield batches until every worker has finished.

        Raises:
            Exception: The first error raised by any worker's content lister
        """
        for item in self._channel:
            if isinstance(item, FetchFailure):
                logger.debug(f"worker {item.worker} reported failure")
                self.close()
                raise item.error
            yield item
        self._coordinator.join()

    def close(self) -> None:
        """Cancel outstanding work and wait for the workers to exit."""
        self._cancel.set()
        self._channel.abort()
        self._coordinator.join()

    def __enter__(self) -> FetchRun:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CorpusFetcher:
    """Fetches package contents with a pool of workers."""

    def __init__(self, lister: ContentLister) -> None:
        """
        Initialize the fetcher.

        Args:
            lister: Callable returning the manifest actions of ``(repo, package)``,
                typically ``PkgrepoWrapper.contents``
        """
        self._lister = lister
        self._lock = threading.Lock()
        self._groups: list[WorkGroup] = []

    def append(self, items: list[WorkItem]) -> None:
        """Queue a group of items to be fetched and delivered together."""
        with self._lock:
            self._groups.append(WorkGroup(items=list(items)))

    def pending(self) -> int:
        """Number of groups not yet picked up by a worker."""
        with self._lock:
            return len(self._groups)

    def _pop(self, cancel: threading.Event) -> WorkGroup | None:
        with self._lock:
            if cancel.is_set() or not self._groups:
                return None
            return self._groups.pop()

    def _fetch(self, group: WorkGroup) -> Batch:
        return [
            ContentsResult(
                repo=item.repo,
                package=item.package,
                actions=self._lister(item.repo, item.package),
            )
            for item in group.items
        ]

    def _worker(
        self,
        name: str,
        channel: ResultChannel[Batch | FetchFailure],
        cancel: threading.Event,
    ) -> int:
        """Pop and fetch groups until the stack is empty. Returns batches sent."""
        sent = 0
        while True:
            group = self._pop(cancel)
            if group is None:
                break

            try:
                batch = self._fetch(group)
            except Exception as e:
                logger.error(f"{name}: {e}")
                cancel.set()
                try:
                    channel.send(FetchFailure(worker=name, error=e))
                except ChannelClosed:
                    pass
                break

            try:
                channel.send(batch)
            except ChannelClosed:
                break
            sent += 1

        logger.debug(f"{name} exiting after {sent} batch(es)")
        return sent

    def run(self, workers: int) -> FetchRun:
        """
        Start fetching in the background.

        Args:
            workers: Number of worker threads (at least 1)

        Returns:
            An iterable of result batches, in no particular order

        Raises:
            ValueError: If ``workers`` is less than 1
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")

        channel: ResultChannel[Batch | FetchFailure] = ResultChannel()
        # Cancellation is scoped to this run
        cancel = threading.Event()
        batches_by_worker: dict[str, int] = {}

        def coordinate() -> None:
            names = [f"w{n + 1:02d}" for n in range(workers)]
            try:
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="manaudit-fetch") as pool:
                    futures = {name: pool.submit(self._worker, name, channel, cancel) for name in names}
                    for name, future in futures.items():
                        try:
                            batches_by_worker[name] = future.result()
                        except Exception as e:
                            # Workers report lister errors themselves; this is anything else
                            logger.error(f"{name} crashed: {e}")
                            cancel.set()
                            try:
                                channel.send(FetchFailure(worker=name, error=e))
                            except ChannelClosed:
                                pass
            finally:
                channel.close()

        logger.info(f"Fetching {self.pending()} group(s) with {workers} worker(s)")
        coordinator = threading.Thread(target=coordinate, name="manaudit-fetch-coordinator", daemon=True)
        coordinator.start()
        return FetchRun(channel, coordinator, cancel, batches_by_worker)
