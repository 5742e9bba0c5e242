"""
Parallel Pairwise Matching

Evaluates every record pair across a thread pool. Only the comparisons run
concurrently; grouping consumes the finished table afterwards in input order,
so results do not depend on completion order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..models import ContactRecord

logger = logging.getLogger(__name__)

PairKey = Tuple[int, int]
Detector = Callable[[ContactRecord, ContactRecord], Optional[Any]]


def compute_match_table(
    records: Sequence[ContactRecord],
    detect: Detector,
    max_workers: int = 4,
) -> Dict[PairKey, Optional[Any]]:
    """
    Compare every pair ``(i, j)`` with ``i < j``.

    Args:
        records: Read-only contact snapshot
        detect: Pairwise comparison, e.g. ``DeduplicationEngine.detect_duplicate``
        max_workers: Thread pool size

    Returns:
        Mapping of index pairs to the comparison result (None for non-matches)
    """
    records = list(records)
    table: Dict[PairKey, Optional[Any]] = {}
    lock = threading.Lock()

    def compare_row(i: int) -> int:
        row: List[Tuple[PairKey, Optional[Any]]] = [
            ((i, j), detect(records[i], records[j]))
            for j in range(i + 1, len(records))
        ]
        with lock:
            table.update(row)
        return len(row)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        # Consuming the iterator re-raises the first worker exception
        compared = sum(executor.map(compare_row, range(len(records))))

    logger.debug(f"Compared {compared} pairs using {max_workers} workers")
    return table
