"""FMP item response functions."""

from flexmet.models.fmp import (
    expected_scores,
    irf_fmp,
    item_probabilities,
    resolve_asymptotes,
    trf_fmp,
)

__all__ = [
    "irf_fmp",
    "item_probabilities",
    "expected_scores",
    "trf_fmp",
    "resolve_asymptotes",
]
