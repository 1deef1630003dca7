"""
Guide annotation handling: control label resolution and the guide -> target map.
"""

from typing import List, Optional, Tuple

import pandas as pd

from .exceptions import InvalidInputError, MissingColumnError

# Labels tried, in order, when no control label is configured.
KNOWN_LABELS: Tuple[str, ...] = ("NoTarget", "no_gid")

# Assigned to guides without a target when no label could be resolved.
MISSING_TARGET_LABEL = "no_gid"


def require_columns(df: pd.DataFrame, columns: List[str], table: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingColumnError(
            f"{table} is missing required column(s) {missing}. "
            f"Available columns: {list(df.columns)}"
        )


def resolve_control_label(
    targets: pd.Series,
    control_label: Optional[str] = None,
    infer_controls: bool = True,
) -> Optional[str]:
    """
    Decide which target label marks non-targeting control guides.

    An explicit ``control_label`` must occur in ``targets``. Otherwise, if
    ``infer_controls`` is set, the first of ``KNOWN_LABELS`` present is used,
    and guides with a missing target fall back to ``MISSING_TARGET_LABEL``.

    Returns
    -------
    str or None
        The control label, or None when the library has no controls.
    """
    present = set(targets.dropna().astype(str))
    if control_label is not None:
        if control_label not in present:
            raise InvalidInputError(
                f"Control label {control_label!r} is not present in the "
                "target column of the annotation."
            )
        return control_label
    if not infer_controls:
        return None
    for label in KNOWN_LABELS:
        if label in present:
            return label
    if targets.isna().any():
        return MISSING_TARGET_LABEL
    return None


def prepare_annotation(
    annotation: pd.DataFrame,
    guide_col: str = "guide",
    target_col: str = "target",
    name_col: Optional[str] = None,
    control_label: Optional[str] = None,
    infer_controls: bool = True,
) -> Tuple[pd.DataFrame, Optional[str]]:
    """
    Normalize an annotation table.

    Returns
    -------
    Tuple[pd.DataFrame, Optional[str]]
        Frame indexed by guide ID with columns ``target`` (and
        ``target_name`` if ``name_col`` is given), plus the resolved control
        label. Guides without a target are assigned to the control label.
    """
    required = [guide_col, target_col] + ([name_col] if name_col else [])
    require_columns(annotation, required, "Annotation")

    ann = annotation[required].copy()
    if ann[guide_col].duplicated().any():
        dups = ann.loc[ann[guide_col].duplicated(), guide_col].unique()[:5]
        raise InvalidInputError(
            f"Annotation maps guides to more than one row, e.g. {list(dups)}."
        )

    label = resolve_control_label(ann[target_col], control_label, infer_controls)
    if ann[target_col].isna().any():
        if label is None:
            raise InvalidInputError(
                "Annotation contains guides without a target and control "
                "inference is disabled."
            )
        ann[target_col] = ann[target_col].fillna(label)

    rename = {guide_col: "guide", target_col: "target"}
    if name_col:
        rename[name_col] = "target_name"
    ann = ann.rename(columns=rename)
    ann["guide"] = ann["guide"].astype(str)
    ann["target"] = ann["target"].astype(str)
    return ann.set_index("guide"), label
