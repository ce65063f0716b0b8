"""Fork-join helpers for the parallel pipeline phases.

Work is split into contiguous slices; every task owns one slice and returns
a private result list. Results are concatenated in slice order after all
tasks have finished, so output order never depends on thread scheduling.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence, TypeVar

from tqdm import tqdm

T = TypeVar("T")
R = TypeVar("R")

# Slices per worker; more slices balance uneven per-item cost
SLICES_PER_WORKER = 4


def partition(items: Sequence[T], parts: int) -> List[Sequence[T]]:
    """Split items into at most `parts` contiguous, non-empty slices."""
    if not items:
        return []
    parts = max(1, min(parts, len(items)))
    size, remainder = divmod(len(items), parts)
    slices = []
    start = 0
    for index in range(parts):
        end = start + size + (1 if index < remainder else 0)
        slices.append(items[start:end])
        start = end
    return slices


def fork_join(
    task: Callable[[Sequence[T]], List[R]],
    items: Sequence[T],
    max_workers: int,
    desc: Optional[str] = None,
    show_progress: bool = False,
    unit: str = "it",
) -> List[R]:
    """Run task over slices of items on a thread pool and concatenate results.

    Args:
        task: Function mapping one slice to its result list
        items: Work items
        max_workers: Thread pool size
        desc: Progress bar label
        show_progress: Display a tqdm progress bar on stderr
        unit: Progress bar unit

    Returns:
        Concatenation of every slice's results, in slice order

    Raises:
        Whatever the first failing task raised (after all tasks finished)
    """
    slices = partition(items, max_workers * SLICES_PER_WORKER)
    if not slices:
        return []

    slots: List[Optional[List[R]]] = [None] * len(slices)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="similarity") as executor:
        futures = {executor.submit(task, chunk): slot for slot, chunk in enumerate(slices)}
        with tqdm(total=len(items), desc=desc, unit=unit, disable=not show_progress, leave=False) as bar:
            for future in as_completed(futures):
                slot = futures[future]
                slots[slot] = future.result()
                bar.update(len(slices[slot]))

    merged: List[R] = []
    for result in slots:
        merged.extend(result)
    return merged
