"""
Tests for the pypipegraph2 job wrappers.
"""

from pathlib import Path

import pypipegraph2 as ppg
import pytest

from crispr_rra.core.results import AggregationConfig
from crispr_rra.jobs.scoring_jobs import generate_results_job, prc_job, roc_job


@pytest.fixture
def new_pipeline(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ppg.new()
    return tmp_path


class TestScoringJobs:
    """Job construction, without running the graph."""

    def test_single_output(self, new_pipeline):
        job = generate_results_job(
            "out/targets.tsv",
            "guides.tsv",
            "annotation.tsv",
            config=AggregationConfig(permutations=10, seed=1),
        )
        assert isinstance(job, ppg.FileGeneratingJob)

    def test_guide_table_adds_output(self, new_pipeline):
        job = generate_results_job(
            "out/targets.tsv",
            "guides.tsv",
            "annotation.tsv",
            config=AggregationConfig(permutations=10, seed=1),
            guide_output_file="out/guides.tsv",
        )
        assert isinstance(job, ppg.MultiFileGeneratingJob)

    def test_curve_jobs_list_summary_and_plots(self, new_pipeline):
        job = roc_job(
            "out/roc.tsv", "targets.tsv", ["POS1"], plot_folder="plots"
        )
        names = {Path(f).name for f in job.files}
        assert "roc.summary.tsv" in names
        assert "roc.png" in names

        job = prc_job("out/prc.tsv", "targets.tsv", "positives.txt")
        assert {Path(f).name for f in job.files} == {
            "prc.tsv",
            "prc.summary.tsv",
        }
