"""
Target-set enrichment: are the targets of interest over-represented among the
significant targets of a screen?
"""

from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import pandas as pd
from scipy.stats import hypergeom, mannwhitneyu

from .annotation import require_columns

DEFAULT_THRESHOLDS = (1e-4, 1e-3, 0.01, 0.05, 0.1, 0.5)


@dataclass
class TargetSetEnrichment:
    """
    Hypergeometric upper-tail p-values per significance threshold.

    ``p_values`` uses the target-level p-value column to call significance,
    ``q_values`` the q-value column. Both are indexed by threshold.
    """

    targets: List[str]
    p_values: pd.Series
    q_values: pd.Series
    n_significant_p: pd.Series = field(default_factory=lambda: pd.Series(dtype=int))
    n_significant_q: pd.Series = field(default_factory=lambda: pd.Series(dtype=int))


def _hypergeometric_tail(
    values: pd.Series, in_set: pd.Series, thresholds: Sequence[float]
):
    valid = values.notna()
    values = values[valid]
    in_set = in_set[valid]
    population = len(values)
    n_set = int(in_set.sum())
    pvals, counts = {}, {}
    for thr in thresholds:
        sig = values <= thr
        n_sig = int(sig.sum())
        overlap = int((sig & in_set).sum())
        if population == 0 or n_set == 0:
            pvals[thr] = np.nan
        else:
            pvals[thr] = float(hypergeom.sf(overlap - 1, population, n_set, n_sig))
        counts[thr] = n_sig
    index = pd.Index(list(thresholds), name="threshold")
    return (
        pd.Series([pvals[t] for t in thresholds], index=index),
        pd.Series([counts[t] for t in thresholds], index=index),
    )


def target_set_enrichment(
    summary: pd.DataFrame,
    targets: Sequence[str],
    enrich: bool = True,
    thresholds: Sequence[float] = DEFAULT_THRESHOLDS,
    target_col: str = "target",
) -> TargetSetEnrichment:
    """
    Test a target set for over-representation among significant targets.

    Parameters
    ----------
    summary : pd.DataFrame
        Target summary with ``p_<dir>`` and ``q_<dir>`` columns.
    targets : Sequence[str]
        Targets of interest; IDs absent from ``summary`` are ignored.
    enrich : bool
        Use the enrichment (True) or depletion (False) columns.
    thresholds : Sequence[float]
        Significance cut-offs applied to the p- and q-value columns.

    Returns
    -------
    TargetSetEnrichment
    """
    direction = "enrich" if enrich else "deplete"
    p_col, q_col = f"p_{direction}", f"q_{direction}"
    require_columns(summary, [target_col, p_col, q_col], "Target summary")

    frame = summary.drop_duplicates(target_col)
    in_set = frame[target_col].isin(set(targets))
    present = [t for t in dict.fromkeys(targets) if t in set(frame[target_col])]

    p_values, n_sig_p = _hypergeometric_tail(frame[p_col], in_set, thresholds)
    q_values, n_sig_q = _hypergeometric_tail(frame[q_col], in_set, thresholds)
    return TargetSetEnrichment(
        targets=present,
        p_values=p_values,
        q_values=q_values,
        n_significant_p=n_sig_p,
        n_significant_q=n_sig_q,
    )


def rank_sum_pvalue(positives, negatives) -> float:
    """One-sided Mann-Whitney p-value that positives rank lower than negatives."""
    pos = np.asarray(positives, dtype=float)
    neg = np.asarray(negatives, dtype=float)
    pos, neg = pos[~np.isnan(pos)], neg[~np.isnan(neg)]
    if len(pos) == 0 or len(neg) == 0:
        return np.nan
    return float(mannwhitneyu(pos, neg, alternative="less").pvalue)
