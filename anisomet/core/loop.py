"""Chunked parallel map over entity index ranges.

Kernels are callables ``kernel(begin, end)`` that read their own inputs and
write only the slice ``[begin, end)`` of a preallocated output. Chunks are
independent, so they run on a thread pool without locking; the batched numpy
calls inside each kernel release the GIL.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from .config import MetricConfig
from .logging_utils import get_logger

logger = get_logger(__name__)

_DEFAULT = MetricConfig()


def chunk_ranges(n: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Split ``[0, n)`` into consecutive ``(begin, end)`` ranges of at most chunk_size."""
    if n <= 0:
        return []
    step = max(1, int(chunk_size))
    return [(b, min(b + step, n)) for b in range(0, n, step)]


def parallel_for(n: int, kernel: Callable[[int, int], None],
                 config: Optional[MetricConfig] = None) -> None:
    """Apply ``kernel`` over ``[0, n)`` in independent chunks.

    Runs inline when there is a single chunk or a single worker. Exceptions
    raised by any chunk propagate to the caller after the pool shuts down.
    """
    cfg = config or _DEFAULT
    ranges = chunk_ranges(n, cfg.chunk_size)
    if not ranges:
        return
    n_workers = min(cfg.resolved_workers(), len(ranges))
    if n_workers == 1:
        for begin, end in ranges:
            kernel(begin, end)
        return
    logger.debug("parallel_for: n=%d chunks=%d workers=%d", n, len(ranges), n_workers)
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        futures = [executor.submit(kernel, begin, end) for begin, end in ranges]
        for future in futures:
            future.result()


__all__ = ['chunk_ranges', 'parallel_for']
