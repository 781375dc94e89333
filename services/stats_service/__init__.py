"""
Stats Service Package: percentile and average reduction of pause samples.
"""

from services.stats_service.aggregator import (
    PAUSE_PERCENTILES,
    DerivedStats,
    average,
    derive_pause_stats,
    percentile,
    sort_ascending,
)

__all__ = [
    "PAUSE_PERCENTILES",
    "DerivedStats",
    "average",
    "derive_pause_stats",
    "percentile",
    "sort_ascending",
]
