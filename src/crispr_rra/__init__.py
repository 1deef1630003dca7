"""
crispr_rra – target-level scoring for pooled CRISPR screens.

This package provides:
- core: directional guide tests, robust rank aggregation, permutation null
  model, target summaries and ROC/PRC evaluation
- services: file I/O
- jobs: pypipegraph2 wrappers
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("crispr-rra")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"


from .core.curves import CurveResult, RankingStatistic, prc_curve, roc_curve
from .core.directional import directional_pvalues
from .core.exceptions import (
    AggregationCancelledError,
    EmptyOverlapError,
    EmptyResultError,
    InvalidInputError,
    MissingColumnError,
    ScreeningError,
    ScreeningWarning,
    UnsupportedStatisticError,
)
from .core.null_model import CancellationToken, FdrMethod, NullModelEstimator
from .core.results import (
    AggregationConfig,
    Direction,
    ScreenResults,
    generate_results,
)

__all__ = [
    "AggregationCancelledError",
    "AggregationConfig",
    "CancellationToken",
    "CurveResult",
    "Direction",
    "EmptyOverlapError",
    "EmptyResultError",
    "FdrMethod",
    "InvalidInputError",
    "MissingColumnError",
    "NullModelEstimator",
    "RankingStatistic",
    "ScreenResults",
    "ScreeningError",
    "ScreeningWarning",
    "UnsupportedStatisticError",
    "directional_pvalues",
    "generate_results",
    "prc_curve",
    "roc_curve",
]
