"""
Robust rank aggregation (RRA) of guide-level p-values into target-level rho.

Each guide is placed on the percentile scale of the whole library; a target's
rho is the smallest Beta order-statistic tail probability of its guides'
sorted percentile ranks (Kolde et al., Bioinformatics 2012).
"""

from typing import Union

import numpy as np
import pandas as pd
from scipy import stats


def percentile_ranks(pvalues: Union[np.ndarray, pd.Series]) -> np.ndarray:
    """
    Percentile rank of every guide among all library guides.

    Ties share the average rank of their block, so equal p-values map to the
    same percentile and a tied block sits at its midpoint instead of at
    either end.
    """
    values = np.asarray(pvalues, dtype=float)
    if values.size == 0:
        return values
    return stats.rankdata(values) / values.size


def rho_matrix(sorted_percentiles: np.ndarray) -> np.ndarray:
    """
    RRA rho for many samples of equal size at once.

    Parameters
    ----------
    sorted_percentiles : np.ndarray
        2-D array (samples x n), every row sorted ascending.

    Returns
    -------
    np.ndarray
        One rho per row.
    """
    r = np.atleast_2d(np.asarray(sorted_percentiles, dtype=float))
    n = r.shape[1]
    k = np.arange(1, n + 1)
    tail = stats.beta.cdf(r, k, n - k + 1)
    return np.minimum(tail.min(axis=1), 1.0)


def rho_score(percentiles) -> float:
    """RRA rho for the percentile ranks of one target's guides."""
    r = np.sort(np.asarray(percentiles, dtype=float))
    if r.size == 0:
        return 1.0
    return float(rho_matrix(r[np.newaxis, :])[0])


def aggregate_rho(percentiles: pd.Series, targets: pd.Series) -> pd.DataFrame:
    """
    Rho per target.

    Parameters
    ----------
    percentiles : pd.Series
        Library-wide percentile rank per guide.
    targets : pd.Series
        Target ID per guide, aligned with ``percentiles``.

    Returns
    -------
    pd.DataFrame
        Indexed by target with columns ``rho`` and ``n_guides``.
    """
    frame = pd.DataFrame(
        {"percentile": np.asarray(percentiles), "target": np.asarray(targets)}
    )
    grouped = frame.groupby("target", sort=True)["percentile"]
    out = pd.DataFrame(
        {
            "rho": grouped.apply(rho_score),
            "n_guides": grouped.size(),
        }
    )
    out.index.name = "target"
    return out
