"""
ROC and precision-recall curves for a screen against known positive targets.

Targets are ordered by a ranking statistic, most significant first. Ranking
statistics from permutation tests are granular, so every block of tied values
is counted as discovered as soon as its value is reached, wherever the
positives sit inside the block. The curves are therefore somewhat
anticonservative when ranks are poorly differentiated; this is intended and
downstream AUC values depend on it.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import average_precision_score

from .annotation import require_columns
from .enrichment import (
    DEFAULT_THRESHOLDS,
    TargetSetEnrichment,
    rank_sum_pvalue,
    target_set_enrichment,
)
from .exceptions import EmptyOverlapError, ScreeningWarning, UnsupportedStatisticError


class RankingStatistic(str, Enum):
    ENRICH_P = "enrich.p"
    DEPLETE_P = "deplete.p"
    ENRICH_FC = "enrich.fc"
    DEPLETE_FC = "deplete.fc"
    ENRICH_RHO = "enrich.rho"
    DEPLETE_RHO = "deplete.rho"

    @classmethod
    def parse(cls, value) -> "RankingStatistic":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedStatisticError(
                f"Unsupported ranking statistic {value!r}, use one of "
                f"{[s.value for s in cls]}."
            ) from None

    @property
    def enrich(self) -> bool:
        return self.value.startswith("enrich")

    @property
    def column(self) -> str:
        direction = "enrich" if self.enrich else "deplete"
        kind = self.value.split(".")[1]
        if kind == "fc":
            return "median_log2fc"
        return f"{kind}_{direction}"

    @property
    def sign(self) -> float:
        # enriched targets have large fold changes, rank them first
        return -1.0 if self is RankingStatistic.ENRICH_FC else 1.0


@dataclass
class CurveResult:
    """
    Curve coordinates plus summary statistics.

    For ROC, ``x`` is the number of targets examined and ``y`` the recall;
    ``statistic`` is the AUC. For PRC, ``x`` is the recall and ``y`` the
    precision; ``statistic`` is the one-sided rank-sum p-value.
    """

    kind: str
    ranking: RankingStatistic
    x: np.ndarray
    y: np.ndarray
    statistic: float
    matched_targets: List[str]
    enrichment: TargetSetEnrichment
    rank_sum_p: float
    average_precision: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def auc(self) -> Optional[float]:
        return self.statistic if self.kind == "roc" else None

    @property
    def p_values(self) -> pd.Series:
        return self.enrichment.p_values

    @property
    def q_values(self) -> pd.Series:
        return self.enrichment.q_values

    def to_frame(self) -> pd.DataFrame:
        if self.kind == "roc":
            columns = ("targets_examined", "recall")
        else:
            columns = ("recall", "precision")
        return pd.DataFrame({columns[0]: self.x, columns[1]: self.y})


def _match_targets(
    summary: pd.DataFrame,
    target_list: Sequence,
    target_col: str,
    messages: List[str],
) -> List[str]:
    if isinstance(target_list, str):
        target_list = [target_list]
    if not all(isinstance(t, str) for t in target_list):
        msg = "Supplied target list is not all strings. Coercing."
        messages.append(msg)
        warnings.warn(msg, ScreeningWarning, stacklevel=4)
        target_list = [str(t) for t in target_list]

    requested = list(dict.fromkeys(target_list))
    available = set(summary[target_col].astype(str))
    present = [t for t in requested if t in available]
    if not present:
        raise EmptyOverlapError(
            "None of the supplied targets are present in the results."
        )
    if len(present) != len(requested):
        msg = (
            f"{len(present)} of {len(requested)} targets are present in the "
            "results. Ignoring the remainder of the target list."
        )
        messages.append(msg)
        warnings.warn(msg, ScreeningWarning, stacklevel=4)
    return present


def _prepare(
    summary: pd.DataFrame,
    target_list: Sequence,
    stat,
    target_col: str,
) -> Tuple[RankingStatistic, pd.DataFrame, List[str], List[str]]:
    ranking = RankingStatistic.parse(stat)
    require_columns(summary, [target_col, ranking.column], "Target summary")
    messages: List[str] = []
    frame = summary.drop_duplicates(target_col).copy()
    frame[target_col] = frame[target_col].astype(str)
    present = _match_targets(frame, target_list, target_col, messages)
    frame["value"] = frame[ranking.column].astype(float) * ranking.sign
    frame["positive"] = frame[target_col].isin(present)
    return ranking, frame, present, messages


def _cumulative_counts(frame: pd.DataFrame):
    """Distinct values with cumulative counts of all targets and positives."""
    values = np.sort(frame["value"].dropna().to_numpy())
    pos_values = np.sort(frame.loc[frame["positive"], "value"].dropna().to_numpy())
    distinct = np.unique(values)
    n_le = np.searchsorted(values, distinct, side="right")
    tp_le = np.searchsorted(pos_values, distinct, side="right")
    return values, distinct, n_le, tp_le


def _tests(frame, present, ranking, thresholds, target_col):
    enrichment = target_set_enrichment(
        frame,
        present,
        enrich=ranking.enrich,
        thresholds=thresholds,
        target_col=target_col,
    )
    rank_sum_p = rank_sum_pvalue(
        frame.loc[frame["positive"], "value"],
        frame.loc[~frame["positive"], "value"],
    )
    return enrichment, rank_sum_p


def roc_curve(
    summary: pd.DataFrame,
    target_list: Sequence[str],
    stat="enrich.p",
    condense: bool = True,
    thresholds: Sequence[float] = DEFAULT_THRESHOLDS,
    target_col: str = "target",
) -> CurveResult:
    """
    Recall of ``target_list`` against the number of targets examined.

    Parameters
    ----------
    summary : pd.DataFrame
        Target summary from :func:`crispr_rra.core.results.generate_results`.
    target_list : Sequence[str]
        Known positive targets. IDs missing from ``summary`` are ignored with
        a warning.
    stat : RankingStatistic or str
        Statistic used to order targets, e.g. "enrich.p" or "deplete.fc".
    condense : bool
        If True, only the points where the recall can change are returned;
        otherwise one point per rank position 0..N.

    Returns
    -------
    CurveResult
        ``statistic`` is the AUC: the fraction of (positive, negative) pairs
        in which the positive ranks no later than the negative, so tied
        blocks count in favour of the positives like the curve itself. A
        perfect ranking scores 1.0, a random one about 0.5.
    """
    ranking, frame, present, messages = _prepare(
        summary, target_list, stat, target_col
    )
    values, distinct, n_le, tp_le = _cumulative_counts(frame)
    n_total = len(values)
    n_pos = len(present)

    first_pos = np.searchsorted(values, distinct, side="left") + 1
    x = np.concatenate([[0], first_pos, [n_total]]).astype(float)
    y = np.concatenate([[0.0], tp_le / n_pos, [1.0]])

    pos_values = np.sort(frame.loc[frame["positive"], "value"].dropna().to_numpy())
    neg_values = frame.loc[~frame["positive"], "value"].dropna().to_numpy()
    if len(neg_values) == 0:
        auc = np.nan
    else:
        hits = np.searchsorted(pos_values, neg_values, side="right")
        auc = float(np.mean(hits / n_pos))

    if not condense:
        elements = np.arange(0, n_total + 1)
        idx = np.searchsorted(x, elements, side="right") - 1
        x, y = elements.astype(float), y[idx]

    enrichment, rank_sum_p = _tests(
        frame, present, ranking, thresholds, target_col
    )
    return CurveResult(
        kind="roc",
        ranking=ranking,
        x=x,
        y=y,
        statistic=auc,
        matched_targets=present,
        enrichment=enrichment,
        rank_sum_p=rank_sum_p,
        warnings=messages,
    )


def prc_curve(
    summary: pd.DataFrame,
    target_list: Sequence[str],
    stat="enrich.p",
    condense: bool = True,
    thresholds: Sequence[float] = DEFAULT_THRESHOLDS,
    target_col: str = "target",
) -> CurveResult:
    """
    Precision against recall of ``target_list``.

    The curve starts at (recall 0, precision 1) and ends at (1, 0). With
    ``condense=False`` one point per rank position is returned, each carrying
    the values of its tied block.

    Returns
    -------
    CurveResult
        ``statistic`` is the one-sided rank-sum p-value of the positives;
        ``average_precision`` is scikit-learn's tie-aware average precision.
    """
    ranking, frame, present, messages = _prepare(
        summary, target_list, stat, target_col
    )
    values, distinct, n_le, tp_le = _cumulative_counts(frame)
    n_pos = len(present)

    if condense:
        precision = tp_le / n_le
        recall = tp_le / n_pos
    else:
        block = np.searchsorted(distinct, values)
        precision = tp_le[block] / n_le[block]
        recall = tp_le[block] / n_pos
    x = np.concatenate([[0.0], recall, [1.0]])
    y = np.concatenate([[1.0], precision, [0.0]])

    scored = frame.dropna(subset=["value"])
    if scored["positive"].any() and not scored["positive"].all():
        ap = float(
            average_precision_score(scored["positive"], -scored["value"])
        )
    else:
        ap = np.nan

    enrichment, rank_sum_p = _tests(
        frame, present, ranking, thresholds, target_col
    )
    return CurveResult(
        kind="prc",
        ranking=ranking,
        x=x,
        y=y,
        statistic=rank_sum_p,
        matched_targets=present,
        enrichment=enrichment,
        rank_sum_p=rank_sum_p,
        average_precision=ap,
        warnings=messages,
    )
