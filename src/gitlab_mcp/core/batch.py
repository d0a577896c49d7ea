"""Bounded-concurrency batch execution for bulk tool actions."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONCURRENCY = 5
"""Maximum number of items processed at the same time."""


@dataclass
class BatchItemResult(Generic[T]):
    """Outcome of processing one item: a result or an error message."""

    item: T
    result: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def batch_process(
    items: Sequence[T],
    processor: Callable[[T], Awaitable[Any]],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> List[BatchItemResult[T]]:
    """Run ``processor`` once per item, ``concurrency`` items at a time.

    A failing item is recorded with its error message; its siblings keep
    running. Results are returned in input order.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run(item: T) -> Any:
        async with semaphore:
            return await processor(item)

    outcomes = await asyncio.gather(*(run(item) for item in items), return_exceptions=True)

    results: List[BatchItemResult[T]] = []
    for item, outcome in zip(items, outcomes):
        if isinstance(outcome, Exception):
            logger.info("Batch item %r failed: %s", item, outcome)
            results.append(BatchItemResult(item=item, error=str(outcome)))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(BatchItemResult(item=item, result=outcome))
    return results


def summarize_batch(
    results: Sequence[BatchItemResult[Any]],
    operation: str,
    **extra: Any,
) -> Dict[str, Any]:
    """Summarize batch results: totals plus per-item status."""
    items = []
    for entry in results:
        summary: Dict[str, Any] = {
            "item": entry.item,
            "status": "success" if entry.ok else "error",
        }
        if entry.result is not None:
            summary["result"] = entry.result
        if entry.error is not None:
            summary["error"] = entry.error
        items.append(summary)

    successful = sum(1 for entry in results if entry.ok)
    return {
        "total_items": len(results),
        "successful": successful,
        "failed": len(results) - successful,
        "operation": operation,
        "results": items,
        **extra,
    }
