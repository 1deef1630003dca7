"""
Permutation null distributions for RRA rho and the derived p/q-values.

Rho depends on the number of guides per target and on the library size, so it
is calibrated empirically: for every distinct guide count ``n`` we draw
``permutations`` random sets of ``n`` library ranks and score them exactly like
an observed target.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from scipy import stats

from .exceptions import AggregationCancelledError, InvalidInputError
from .rra import rho_matrix


class FdrMethod(str, Enum):
    BH = "bh"
    BY = "by"

    @classmethod
    def parse(cls, value) -> "FdrMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInputError(
                f"Unknown FDR method {value!r}, use one of "
                f"{[m.value for m in cls]}."
            ) from None


class CancellationToken:
    """
    Cooperative cancellation flag with an optional deadline.

    The null model checks it between permutation batches.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise AggregationCancelledError(
                "Aggregation cancelled before the null model was complete."
            )


def _validate_permutations(permutations) -> int:
    if isinstance(permutations, bool) or not isinstance(
        permutations, (int, np.integer)
    ):
        raise InvalidInputError(
            f"permutations must be a positive integer, got {permutations!r}."
        )
    if permutations <= 0:
        raise InvalidInputError(
            f"permutations must be a positive integer, got {permutations}."
        )
    return int(permutations)


def _null_batch(
    library_size: int, n: int, size: int, entropy: Tuple[int, int, int]
) -> np.ndarray:
    """Rho for ``size`` random draws of ``n`` distinct library ranks."""
    rng = np.random.default_rng(list(entropy))
    ranks = np.empty((size, n), dtype=float)
    for i in range(size):
        ranks[i] = rng.choice(library_size, size=n, replace=False)
    ranks = (np.sort(ranks, axis=1) + 1.0) / library_size
    return rho_matrix(ranks)


class NullModelEstimator:
    """
    Empirical null distributions of rho, one per guide count.

    Parameters
    ----------
    library_size : int
        Number of guides in the background ranking (controls included).
    permutations : int
        Null samples per guide count. Must be positive.
    seed : int, optional
        Seed for the random streams. Batch ``b`` of guide count ``n`` draws
        from ``default_rng([seed, n, b])``, so results do not depend on
        ``max_workers``. Without a seed a fresh one is drawn once per
        estimator.
    batch_size : int
        Permutations per work unit.
    max_workers : int
        Threads used to compute batches; 1 runs inline.
    cancel_token : CancellationToken, optional
        Checked between batches.

    The estimator owns its cache of null distributions; create one per
    aggregation run and pass it explicitly to the code that needs it.
    """

    def __init__(
        self,
        library_size: int,
        permutations: int = 1000,
        seed: Optional[int] = None,
        batch_size: int = 250,
        max_workers: int = 1,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.permutations = _validate_permutations(permutations)
        if library_size < 1:
            raise InvalidInputError("The library must contain at least one guide.")
        if batch_size < 1:
            raise InvalidInputError("batch_size must be at least 1.")
        if max_workers < 1:
            raise InvalidInputError("max_workers must be at least 1.")
        self.library_size = int(library_size)
        if seed is None:
            seed = int(np.random.SeedSequence().entropy % (2**32))
        if seed < 0:
            raise InvalidInputError(f"seed must be non-negative, got {seed}.")
        self.seed = int(seed)
        self.batch_size = int(batch_size)
        self.max_workers = int(max_workers)
        self.cancel_token = cancel_token or CancellationToken()
        self._cache: Dict[int, np.ndarray] = {}

    @property
    def cache(self) -> Dict[int, np.ndarray]:
        """Sorted null rho samples computed so far, keyed by guide count."""
        return self._cache

    def _batches(self, n: int) -> List[Tuple[int, int, int]]:
        """(n, batch index, batch size) work units for one guide count."""
        units = []
        for b, start in enumerate(range(0, self.permutations, self.batch_size)):
            size = min(self.batch_size, self.permutations - start)
            units.append((n, b, size))
        return units

    def _run_unit(self, unit: Tuple[int, int, int]) -> np.ndarray:
        n, b, size = unit
        self.cancel_token.raise_if_cancelled()
        return _null_batch(self.library_size, n, size, (self.seed, n, b))

    def prepare(self, guide_counts: Iterable[int]) -> None:
        """Compute and cache null distributions for all missing guide counts."""
        missing = sorted(
            {int(n) for n in guide_counts if int(n) not in self._cache}
        )
        for n in missing:
            if n < 1 or n > self.library_size:
                raise InvalidInputError(
                    f"Guide count {n} is outside 1..{self.library_size}."
                )
        units = [u for n in missing for u in self._batches(n)]
        if not units:
            return

        results: Dict[Tuple[int, int], np.ndarray] = {}
        if self.max_workers == 1:
            for unit in units:
                results[unit[:2]] = self._run_unit(unit)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {executor.submit(self._run_unit, u): u for u in units}
                try:
                    for fut in as_completed(futures):
                        results[futures[fut][:2]] = fut.result()
                        self.cancel_token.raise_if_cancelled()
                except BaseException:
                    for fut in futures:
                        fut.cancel()
                    raise

        self.cancel_token.raise_if_cancelled()
        for n in missing:
            parts = [results[(n, b)] for _, b, _ in self._batches(n)]
            self._cache[n] = np.sort(np.concatenate(parts))

    def null_distribution(self, n: int) -> np.ndarray:
        """Sorted null rho sample for guide count ``n``."""
        self.prepare([n])
        return self._cache[int(n)]

    def empirical_pvalues(self, rho, n_guides) -> np.ndarray:
        """
        (#null rho <= observed + 1) / (permutations + 1) for every target.

        Parameters
        ----------
        rho : array-like
            Observed rho per target.
        n_guides : array-like
            Guide count per target, aligned with ``rho``.
        """
        rho = np.asarray(rho, dtype=float)
        n_guides = np.asarray(n_guides, dtype=int)
        self.prepare(np.unique(n_guides))
        pvals = np.empty(rho.shape, dtype=float)
        for n in np.unique(n_guides):
            mask = n_guides == n
            null = self._cache[int(n)]
            hits = np.searchsorted(null, rho[mask], side="right")
            pvals[mask] = (hits + 1.0) / (self.permutations + 1.0)
        return pvals


def adjust_pvalues(pvalues, method=FdrMethod.BH) -> np.ndarray:
    """FDR step-up adjustment of a vector of p-values."""
    method = FdrMethod.parse(method)
    p = np.asarray(pvalues, dtype=float)
    if p.size == 0:
        return p
    return stats.false_discovery_control(p, method=method.value)
