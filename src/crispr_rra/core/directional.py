"""
Directional (one-sided) p-values from two-sided per-guide test statistics.
"""

from typing import Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import InvalidInputError

ArrayLike = Union[np.ndarray, pd.Series, list, float]

# smallest positive double, keeps p-values inside (0, 1]
_P_FLOOR = np.finfo(float).tiny


def directional_pvalues(
    statistic: ArrayLike, df: ArrayLike
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a two-sided t-like statistic into enrichment and depletion p-values.

    Positive statistics indicate enrichment. For each guide

        p_enrich  = P(T_df > t)
        p_deplete = P(T_df < t)

    Parameters
    ----------
    statistic : array-like
        Moderated t statistics, one per guide.
    df : array-like or float
        Degrees of freedom, either one value for all guides or one per guide.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (p_enrich, p_deplete), both in (0, 1].
    """
    t = np.asarray(statistic, dtype=float)
    dof = np.broadcast_to(np.asarray(df, dtype=float), t.shape)

    if not np.all(np.isfinite(t)):
        n_bad = int((~np.isfinite(t)).sum())
        raise InvalidInputError(
            f"{n_bad} guide statistic(s) are missing or not finite."
        )
    if np.any(np.isnan(dof)) or np.any(dof <= 0):
        n_bad = int((np.isnan(dof) | (dof <= 0)).sum())
        raise InvalidInputError(
            f"{n_bad} guide(s) have missing or non-positive degrees of freedom."
        )

    p_enrich = stats.t.sf(t, dof)
    p_deplete = stats.t.cdf(t, dof)
    return (
        np.clip(p_enrich, _P_FLOOR, 1.0),
        np.clip(p_deplete, _P_FLOOR, 1.0),
    )
