"""
Bounded batch extraction.

``BatchRunner`` feeds document indexes through an ``asyncio.Queue`` to a fixed
number of worker tasks. Each worker hands one document at a time to a thread
pool of the same size, so no more than ``pool_size`` extractions ever run at
once, whatever the batch length. Results land in a slot per input index.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence
from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars

from htmlsift.config.config import ExtractConfig
from htmlsift.errors import BatchError, InvalidConfigError, ProcessingTimeoutError
from htmlsift.extractor.models import Result
from htmlsift.observability import gauge_add

if TYPE_CHECKING:
    from htmlsift.processor import Processor, Source

logger = structlog.get_logger(__name__)


class FailurePolicy(str, Enum):
    """What a failing item does to the rest of the batch."""

    COLLECT_ALL = "collect_all"
    FAIL_FAST = "fail_fast"


@dataclass(slots=True, frozen=True)
class BatchItem:
    index: int
    result: Result | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchResult(Sequence[BatchItem]):
    """Per-input outcomes, ``items[i]`` always belongs to input ``i``."""

    items: tuple[BatchItem, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index):  # type: ignore[override]
        return self.items[index]

    def __iter__(self) -> Iterator[BatchItem]:
        return iter(self.items)

    @property
    def results(self) -> list[Result | None]:
        return [item.result for item in self.items]

    @property
    def errors(self) -> list[BaseException | None]:
        return [item.error for item in self.items]

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failed(self) -> int:
        return len(self.items) - self.succeeded

    def raise_for_errors(self) -> None:
        """Raise ``BatchError`` if any item failed."""
        failures = [item.error for item in self.items if item.error is not None]
        if not failures:
            return
        total = len(self.items)
        if len(failures) == total:
            message = f"all {total} items failed"
        else:
            message = f"partial failure ({total - len(failures)}/{total} succeeded)"
        raise BatchError(message, failures)


@dataclass(slots=True)
class _BatchState:
    sources: list[Source]
    config: ExtractConfig
    policy: FailurePolicy
    slots: list[BatchItem | None]
    cancel_event: threading.Event
    executor: ThreadPoolExecutor
    first_error: BaseException | None = None


class BatchRunner:
    """Runs ``Processor.extract`` over many inputs with bounded concurrency."""

    def __init__(self, processor: Processor, pool_size: int) -> None:
        if pool_size < 1:
            raise InvalidConfigError(f"pool size must be at least 1, got {pool_size}")
        self.processor = processor
        self.pool_size = pool_size

    async def run(
        self,
        sources: Iterable[Source],
        config: ExtractConfig,
        *,
        failure_policy: FailurePolicy = FailurePolicy.COLLECT_ALL,
        batch_timeout: float | None = None,
    ) -> BatchResult:
        """
        Extract every source and return outcomes aligned with the input order.

        Under ``COLLECT_ALL`` each failure is stored in its item. Under
        ``FAIL_FAST`` the first failure cancels outstanding work and is raised.
        When ``batch_timeout`` expires, unfinished items get a
        ``ProcessingTimeoutError`` (raised directly under ``FAIL_FAST``).
        """
        documents = list(sources)
        if not documents:
            return BatchResult()

        with bound_contextvars(batch_id=uuid4().hex[:12]):
            return await self._run(documents, config, failure_policy, batch_timeout)

    async def _run(
        self,
        documents: list[Source],
        config: ExtractConfig,
        failure_policy: FailurePolicy,
        batch_timeout: float | None,
    ) -> BatchResult:
        workers = min(self.pool_size, len(documents))
        queue: asyncio.Queue[int | None] = asyncio.Queue()
        for index in range(len(documents)):
            queue.put_nowait(index)
        for _ in range(workers):
            queue.put_nowait(None)

        state = _BatchState(
            sources=documents,
            config=config,
            policy=failure_policy,
            slots=[None] * len(documents),
            cancel_event=threading.Event(),
            executor=ThreadPoolExecutor(max_workers=workers, thread_name_prefix="htmlsift-batch"),
        )
        log = logger.bind(
            component="BatchRunner",
            size=len(documents),
            workers=workers,
            policy=failure_policy.value,
        )
        log.info("Batch started")

        timed_out = False
        try:
            async with asyncio.timeout(batch_timeout):
                async with asyncio.TaskGroup() as tg:
                    for worker_id in range(workers):
                        tg.create_task(self._worker(worker_id, queue, state))
        except* TimeoutError:
            timed_out = True
        except* Exception as eg:
            if state.first_error is None:
                state.first_error = eg.exceptions[0]
        finally:
            state.cancel_event.set()
            state.executor.shutdown(wait=False, cancel_futures=True)

        if state.first_error is not None:
            log.warning("Batch aborted", error=str(state.first_error), error_type=type(state.first_error).__name__)
            raise state.first_error

        if timed_out:
            if failure_policy is FailurePolicy.FAIL_FAST:
                log.warning("Batch deadline exceeded", timeout=batch_timeout)
                raise ProcessingTimeoutError(f"batch deadline of {batch_timeout}s exceeded")
            for index, slot in enumerate(state.slots):
                if slot is None:
                    state.slots[index] = BatchItem(
                        index=index,
                        error=ProcessingTimeoutError("batch deadline exceeded before the item completed"),
                    )

        result = BatchResult(tuple(slot for slot in state.slots if slot is not None))
        log.info("Batch completed", succeeded=result.succeeded, failed=result.failed, timed_out=timed_out)
        return result

    async def _worker(self, worker_id: int, queue: asyncio.Queue[int | None], state: _BatchState) -> None:
        """Take the next pending index until the sentinel arrives."""
        loop = asyncio.get_running_loop()
        while True:
            index = await queue.get()
            if index is None:
                break

            call = functools.partial(
                self.processor.extract,
                state.sources[index],
                state.config,
                cancel_event=state.cancel_event,
            )
            gauge_add("batch_in_flight", 1)
            try:
                result = await loop.run_in_executor(state.executor, call)
            except Exception as exc:
                if state.policy is FailurePolicy.FAIL_FAST:
                    if state.first_error is None:
                        state.first_error = exc
                    state.cancel_event.set()
                    raise
                state.slots[index] = BatchItem(index=index, error=exc)
                logger.debug("Batch item failed", index=index, worker_id=worker_id, error=str(exc))
            else:
                state.slots[index] = BatchItem(index=index, result=result)
            finally:
                gauge_add("batch_in_flight", -1)
