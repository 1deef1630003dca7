"""
Tests for core/null_model.py module.
"""
import numpy as np
import pytest

from crispr_rra.core.exceptions import AggregationCancelledError, InvalidInputError
from crispr_rra.core.null_model import (
    CancellationToken,
    FdrMethod,
    NullModelEstimator,
    adjust_pvalues,
)


class TestNullDistribution:
    """Test NullModelEstimator.null_distribution."""

    def test_shape_and_range(self):
        est = NullModelEstimator(library_size=200, permutations=300, seed=1)
        null = est.null_distribution(4)
        assert null.shape == (300,)
        assert np.all(null >= 0) and np.all(null <= 1)
        assert np.all(np.diff(null) >= 0)

    def test_same_seed_is_bit_identical(self):
        a = NullModelEstimator(library_size=500, permutations=400, seed=11)
        b = NullModelEstimator(library_size=500, permutations=400, seed=11)
        assert np.array_equal(a.null_distribution(3), b.null_distribution(3))

    def test_independent_of_worker_count(self):
        serial = NullModelEstimator(
            library_size=500, permutations=1000, seed=3, batch_size=100
        )
        threaded = NullModelEstimator(
            library_size=500,
            permutations=1000,
            seed=3,
            batch_size=100,
            max_workers=4,
        )
        for n in (2, 5):
            assert np.array_equal(
                serial.null_distribution(n), threaded.null_distribution(n)
            )

    def test_different_seeds_differ(self):
        a = NullModelEstimator(library_size=500, permutations=200, seed=1)
        b = NullModelEstimator(library_size=500, permutations=200, seed=2)
        assert not np.array_equal(a.null_distribution(3), b.null_distribution(3))

    def test_cached_per_guide_count(self):
        est = NullModelEstimator(library_size=100, permutations=100, seed=0)
        est.empirical_pvalues([0.1, 0.2, 0.3], [3, 3, 4])
        assert set(est.cache) == {3, 4}
        first = est.null_distribution(3)
        assert est.null_distribution(3) is first

    def test_guide_count_larger_than_library_raises(self):
        est = NullModelEstimator(library_size=5, permutations=10, seed=0)
        with pytest.raises(InvalidInputError):
            est.null_distribution(6)


class TestEmpiricalPvalues:
    """Test NullModelEstimator.empirical_pvalues."""

    def test_bounds(self):
        est = NullModelEstimator(library_size=300, permutations=99, seed=5)
        p = est.empirical_pvalues([0.0, 1.0], [3, 3])
        assert p[0] == pytest.approx(1 / 100)
        assert p[1] == pytest.approx(1.0)

    def test_monotone_in_rho(self):
        est = NullModelEstimator(library_size=300, permutations=500, seed=5)
        rho = np.linspace(0, 1, 101)
        p = est.empirical_pvalues(rho, np.full(rho.size, 4))
        assert np.all(np.diff(p) >= 0)

    def test_reproducible(self):
        rho = [0.001, 0.05, 0.3]
        p1 = NullModelEstimator(1000, 500, seed=9).empirical_pvalues(rho, [4, 4, 6])
        p2 = NullModelEstimator(1000, 500, seed=9).empirical_pvalues(rho, [4, 4, 6])
        assert np.array_equal(p1, p2)


class TestValidation:
    """Test parameter validation."""

    @pytest.mark.parametrize("permutations", [0, -10, 2.5, True])
    def test_bad_permutations(self, permutations):
        with pytest.raises(InvalidInputError):
            NullModelEstimator(library_size=100, permutations=permutations)

    def test_negative_seed(self):
        with pytest.raises(InvalidInputError):
            NullModelEstimator(library_size=100, permutations=10, seed=-1)

    def test_unseeded_estimator_draws_a_seed(self):
        est = NullModelEstimator(library_size=100, permutations=10)
        assert est.seed >= 0


class TestCancellation:
    """Test CancellationToken handling."""

    def test_cancelled_token_aborts(self):
        token = CancellationToken()
        token.cancel()
        est = NullModelEstimator(
            library_size=100, permutations=100, seed=0, cancel_token=token
        )
        with pytest.raises(AggregationCancelledError):
            est.null_distribution(3)
        assert est.cache == {}

    def test_expired_deadline_aborts_threaded(self):
        token = CancellationToken(timeout=0)
        est = NullModelEstimator(
            library_size=100,
            permutations=1000,
            seed=0,
            batch_size=10,
            max_workers=3,
            cancel_token=token,
        )
        with pytest.raises(AggregationCancelledError):
            est.null_distribution(3)
        assert est.cache == {}

    def test_fresh_token_not_cancelled(self):
        assert not CancellationToken().cancelled
        assert not CancellationToken(timeout=3600).cancelled


class TestAdjustPvalues:
    """Test adjust_pvalues function."""

    def test_benjamini_hochberg(self):
        p = np.array([0.01, 0.04, 0.03, 0.5])
        q = adjust_pvalues(p, "bh")
        np.testing.assert_allclose(q, [0.04, 0.16 / 3, 0.16 / 3, 0.5])

    def test_by_is_more_conservative(self):
        p = np.array([0.01, 0.02, 0.2, 0.6])
        assert np.all(adjust_pvalues(p, FdrMethod.BY) >= adjust_pvalues(p, "bh"))

    def test_unknown_method(self):
        with pytest.raises(InvalidInputError):
            adjust_pvalues([0.1], "holm")
