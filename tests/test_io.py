"""
Tests for services/io.py, the command line interface and settings.
"""
import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest
from typer.testing import CliRunner

from crispr_rra.config import Settings
from crispr_rra.core.results import AggregationConfig
from crispr_rra.main import app
from crispr_rra.services.io import (
    evaluate_curve,
    read_dataframe,
    read_target_list,
    score_screen,
)


@pytest.fixture
def screen_files(tmp_path, six_target_screen):
    stats_df, ann = six_target_screen
    stats_file = tmp_path / "guide_stats.tsv"
    ann_file = tmp_path / "annotation.csv"
    stats_df.to_csv(stats_file, sep="\t", index=False)
    ann.to_csv(ann_file, index=False)
    targets_file = tmp_path / "positives.txt"
    targets_file.write_text("POS1\nPOS2\n")
    return stats_file, ann_file, targets_file


class TestReadDataframe:
    """Test read_dataframe function."""

    def test_tsv_and_csv(self, screen_files):
        stats_file, ann_file, _ = screen_files
        assert "t" in read_dataframe(stats_file).columns
        assert "target" in read_dataframe(ann_file).columns

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_dataframe(tmp_path / "missing.tsv")


class TestReadTargetList:
    """Test read_target_list function."""

    def test_plain_text(self, screen_files):
        *_, targets_file = screen_files
        assert read_target_list(targets_file) == ["POS1", "POS2"]

    def test_table_column(self, tmp_path):
        path = tmp_path / "essentials.tsv"
        pd.DataFrame({"gene": ["A", "B", None]}).to_csv(path, sep="\t", index=False)
        assert read_target_list(path, column="gene") == ["A", "B"]


class TestScoreScreen:
    """Test score_screen and evaluate_curve."""

    def test_writes_tables(self, tmp_path, screen_files):
        stats_file, ann_file, _ = screen_files
        out = tmp_path / "out" / "targets.tsv"
        guides_out = tmp_path / "out" / "guides.tsv"
        score_screen(
            out,
            stats_file,
            ann_file,
            config=AggregationConfig(permutations=200, seed=1),
            guide_output_file=guides_out,
        )
        targets = pd.read_csv(out, sep="\t")
        assert len(targets) == 6
        assert len(pd.read_csv(guides_out, sep="\t")) == 18

    def test_roc_with_plot(self, tmp_path, screen_files):
        stats_file, ann_file, targets_file = screen_files
        summary = tmp_path / "targets.tsv"
        score_screen(
            summary, stats_file, ann_file, AggregationConfig(permutations=500, seed=1)
        )
        curve_file = tmp_path / "curves" / "roc.tsv"
        roc = evaluate_curve(
            "roc", curve_file, summary, targets_file, plot_folder=tmp_path / "plots"
        )
        assert roc.statistic == pytest.approx(1.0)
        assert curve_file.exists()
        written = pd.read_csv(tmp_path / "curves" / "roc.summary.tsv", sep="\t")
        assert written.loc[0, "value"] == pytest.approx(1.0)
        assert (tmp_path / "plots" / "roc.png").exists()

    def test_prc(self, tmp_path, screen_files):
        stats_file, ann_file, _ = screen_files
        summary = tmp_path / "targets.tsv"
        score_screen(
            summary, stats_file, ann_file, AggregationConfig(permutations=200, seed=1)
        )
        prc = evaluate_curve("prc", tmp_path / "prc.tsv", summary, ["POS1"])
        frame = pd.read_csv(tmp_path / "prc.tsv", sep="\t")
        assert list(frame.columns) == ["recall", "precision"]
        assert prc.kind == "prc"

    def test_unknown_curve(self, tmp_path, screen_files):
        stats_file, ann_file, _ = screen_files
        summary = tmp_path / "targets.tsv"
        score_screen(
            summary, stats_file, ann_file, AggregationConfig(permutations=50, seed=1)
        )
        with pytest.raises(ValueError):
            evaluate_curve("det", tmp_path / "x.tsv", summary, ["POS1"])


class TestCli:
    """Test the typer command line interface."""

    def test_score_and_roc(self, tmp_path, screen_files):
        stats_file, ann_file, targets_file = screen_files
        runner = CliRunner()
        summary = tmp_path / "cli_targets.tsv"
        result = runner.invoke(
            app,
            [
                "score",
                str(stats_file),
                str(ann_file),
                "-o",
                str(summary),
                "--permutations",
                "500",
                "--seed",
                "3",
            ],
        )
        assert result.exit_code == 0, result.output
        assert summary.exists()
        assert "Seed: 3" in result.output

        result = runner.invoke(
            app,
            ["roc", str(summary), str(targets_file), "-o", str(tmp_path / "roc.tsv")],
        )
        assert result.exit_code == 0, result.output
        assert "AUC: 1.0000" in result.output

    def test_info(self):
        result = CliRunner().invoke(app, ["info"])
        assert result.exit_code == 0
        assert "Permutations" in result.output


class TestSettings:
    """Test environment driven settings."""

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CRISPR_RRA_PERMUTATIONS", "77")
        monkeypatch.setenv("CRISPR_RRA_SEED", "5")
        s = Settings()
        assert s.permutations == 77
        assert s.seed == 5
