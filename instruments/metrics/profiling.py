"""Summaries of completed database queries timed with Work.

Used to build per-request profiling payloads: how long was spent in
queries overall, which queries ran most often and which were slowest.
"""

from collections import Counter as TallyCounter
from typing import Any, Dict, Iterable, List, Tuple

from .work import Work

TOP_N = 5

_QUERY_TYPES = (
    ("USE", "use_keyspace"),
    ("SELECT", "select"),
    ("UPDATE", "update"),
    ("DELETE", "delete"),
)


def summarize_queries(entries: Iterable[Tuple[str, Work]]) -> Dict[str, Any]:
    """Aggregate ``(query, work)`` pairs of stopped works.

    Returns:
        ``{"stats": {"total_time": ms}, "queries": {"top_5_used": [...],
        "top_5_time": [...]}}``. ``top_5_used`` is ordered by descending use
        count; ``top_5_time`` holds the five slowest queries, fastest first.
    """
    usage: TallyCounter = TallyCounter()
    timings: List[Tuple[float, str]] = []
    total_time = 0.0

    for query, work in entries:
        elapsed = work.elapsed_ms
        if elapsed is None:
            raise ValueError(f"Work '{work.label}' for query {query!r} has not been stopped")
        total_time += elapsed
        usage[query] += 1
        timings.append((elapsed, query))

    # Stable sorts keep first-seen order between equal counts/times
    top_used = sorted(usage.items(), key=lambda item: -item[1])[:TOP_N]
    slowest = sorted(timings, key=lambda item: item[0])[-TOP_N:]

    return {
        "stats": {
            "total_time": total_time,
        },
        "queries": {
            "top_5_used": [{"query": query, "used": used} for query, used in top_used],
            "top_5_time": [{"query": query, "time": elapsed} for elapsed, query in slowest],
        },
    }


def get_query_type(query: str) -> str:
    """Classify a CQL statement by its leading keyword."""
    for prefix, query_type in _QUERY_TYPES:
        if query.startswith(prefix):
            return query_type
    if "BATCH" in query:
        return "batch"
    return "unknown"
