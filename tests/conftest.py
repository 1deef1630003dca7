"""
Shared fixtures for crispr_rra tests.
"""
import numpy as np
import pandas as pd
import pytest


def make_screen(t_by_target, df=10.0, controls=(), control_label="NoTarget"):
    """
    Build a guide statistics table and annotation from t values per target.

    Guide IDs are "<target>_g<i>", log2 fold changes are t / 4.
    """
    stats_rows = []
    ann_rows = []
    for target, t_values in t_by_target.items():
        for i, t in enumerate(t_values):
            guide = f"{target}_g{i}"
            stats_rows.append(
                {"guide": guide, "t": float(t), "df": df, "log2fc": t / 4.0}
            )
            ann_rows.append({"guide": guide, "target": target})
    for i, t in enumerate(controls):
        guide = f"ctrl_g{i}"
        stats_rows.append(
            {"guide": guide, "t": float(t), "df": df, "log2fc": t / 4.0}
        )
        ann_rows.append({"guide": guide, "target": control_label})
    return pd.DataFrame(stats_rows), pd.DataFrame(ann_rows)


@pytest.fixture
def six_target_screen():
    """6 targets with 3 guides each; POS1 and POS2 are strongly enriched."""
    return make_screen(
        {
            "POS1": [6.0, 7.0, 8.0],
            "POS2": [5.5, 6.5, 9.0],
            "GENE_A": [0.9, -0.5, 0.2],
            "GENE_B": [-1.5, 0.5, 0.1],
            "GENE_C": [0.3, -2.0, 0.8],
            "GENE_D": [-0.7, 0.6, -1.2],
        }
    )


@pytest.fixture
def random_screen():
    """40 targets with 4 guides each plus 30 non-targeting controls."""
    rng = np.random.default_rng(7)
    t_by_target = {
        f"GENE{i:03d}": rng.normal(0, 1.5, 4).tolist() for i in range(40)
    }
    t_by_target["HIT_UP"] = [4.5, 5.0, 3.8, 6.1]
    t_by_target["HIT_DOWN"] = [-4.2, -5.5, -3.9, -4.8]
    return make_screen(t_by_target, controls=rng.normal(0, 1, 30).tolist())


@pytest.fixture
def target_summary():
    """Target summary with 10 targets, T1 and T2 the most enriched."""
    targets = [f"T{i}" for i in range(1, 11)]
    p = np.linspace(0.001, 0.9, 10)
    return pd.DataFrame(
        {
            "target": targets,
            "n_guides": 4,
            "median_log2fc": np.linspace(3.0, -3.0, 10),
            "rho_enrich": p / 10,
            "p_enrich": p,
            "q_enrich": np.minimum(p * 2, 1.0),
            "rho_deplete": p[::-1] / 10,
            "p_deplete": p[::-1],
            "q_deplete": np.minimum(p[::-1] * 2, 1.0),
        }
    )
