"""
Chunked processing helpers.

Long loops over rows or profile pairs hand control back to the event loop
after every chunk of items, so a server handling other requests is never
starved. Chunk size only changes latency, never results.
"""

import asyncio
from typing import AsyncIterator, Callable, Iterable, Optional, TypeVar

from .constants import DEFAULT_CHUNK_SIZE


T = TypeVar('T')

ProgressCallback = Callable[[int, int], None]


async def iterate_in_chunks(
    items: Iterable[T],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    total: int = 0,
    on_progress: Optional[ProgressCallback] = None,
) -> AsyncIterator[T]:
    """
    Yield items in order, sleeping zero seconds after every chunk.

    Args:
        items: Items to iterate, consumed lazily
        chunk_size: Items handed out between yields to the event loop
        total: Expected item count, passed through to on_progress
        on_progress: Optional callback receiving (processed, total)

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got: {chunk_size}")

    processed = 0
    for item in items:
        yield item
        processed += 1

        if processed % chunk_size == 0:
            if on_progress:
                on_progress(processed, total)
            await asyncio.sleep(0)

    if on_progress and processed % chunk_size:
        on_progress(processed, total)
