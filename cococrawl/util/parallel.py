"""
Scatter/gather over a fixed-size thread pool.

Work items are independent from each other: the scatter stage runs them in any order,
the gather stage puts the results back into the order of the input.
Anything order-dependent (id assignment, reference rewriting) has to happen after gathering.
"""

import concurrent.futures
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")

Observer = Callable[[int, int], None]
"""Gets called with (completed items, total items) every time an item is done"""


def scatter(
    items: Sequence[T],
    func: Callable[[T], R],
    workers: Optional[int] = None,
    observer: Optional[Observer] = None,
) -> List[Tuple[int, R]]:
    """
    Runs ``func`` on every item in a thread pool.

    Returns (index of the item, result) pairs in completion order.
    ``func`` is expected to turn the failures of a single item into a result value,
    any exception that escapes it aborts the whole scatter.

    The observer is called from the calling thread, not from the workers.
    """
    total = len(items)
    results: List[Tuple[int, R]] = []
    if total == 0:
        return results

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures: Dict[concurrent.futures.Future, int] = {
            executor.submit(func, item): idx for idx, item in enumerate(items)
        }
        for done, future in enumerate(concurrent.futures.as_completed(futures), start=1):
            results.append((futures[future], future.result()))
            if observer is not None:
                observer(done, total)

    return results


def gather(results: Sequence[Tuple[int, R]]) -> List[R]:
    """Puts scattered results back into the order of the input items"""
    return [res for _, res in sorted(results, key=lambda pair: pair[0])]
