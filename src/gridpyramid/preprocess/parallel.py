"""Fail-fast fork-join over independent units of work."""

from __future__ import annotations

import logging
import multiprocessing
import random
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, TypeVar

from tqdm import tqdm

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def process_pool(workers: int) -> ProcessPoolExecutor:
    """Process pool for decode-heavy work.

    Uses the ``spawn`` start method: the parent has usually started libvips
    worker threads already, and forking a threaded process can deadlock.
    """
    return ProcessPoolExecutor(
        max_workers=workers, mp_context=multiprocessing.get_context("spawn")
    )


def thread_pool(workers: int) -> ThreadPoolExecutor:
    """Thread pool for work sharing one in-memory image."""
    return ThreadPoolExecutor(max_workers=workers)


def shuffled(items: Iterable[T]) -> list[T]:
    """Copy of ``items`` in random order.

    Similar-cost decodes are spread out instead of arriving in bursts.
    """
    work = list(items)
    random.shuffle(work)
    return work


def run_parallel(
    executor: Executor,
    fn: Callable[..., R],
    items: list[T],
    desc: str,
    progress: Callable[[int, int], None] | None = None,
) -> list[tuple[T, R]]:
    """Run ``fn(*item)`` for every item and collect ``(item, result)`` pairs.

    Results come back in completion order. The first failing unit cancels
    every pending unit and its exception propagates unchanged; results of
    units still running are discarded.

    Args:
        executor: Pool to submit to (shut down on return)
        fn: Picklable callable taking the unpacked item
        items: Argument tuples, one per unit of work
        desc: Progress bar label
        progress: Optional callback(completed, total), called in this process
            once before the first unit finishes and after every unit
    """
    results: list[tuple[T, R]] = []
    with executor:
        futures = {executor.submit(fn, *item): item for item in items}
        total = len(futures)
        if progress:
            progress(0, total)
        with tqdm(total=total, desc=desc, leave=False) as pbar:
            for future in as_completed(futures):
                item = futures[future]
                try:
                    result = future.result()
                except Exception:
                    logger.error(
                        "%s failed; cancelling %d pending units",
                        desc, total - len(results) - 1,
                    )
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise
                results.append((item, result))
                pbar.update(1)
                if progress:
                    progress(len(results), total)
    return results
