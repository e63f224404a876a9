"""
Variable stability through resampling.

For b = 1..B the data are resampled (bootstrap or subsample), the
multi-path search is re-run, and for each predictor j

    z_j(b) = (# retained models containing j) / (# retained models)

counted over every depth of that resample's search.  The stability score
is the mean over resamples, pi_j = mean_b z_j(b).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.utils import check_random_state

from ._validation import check_data, check_family
from .exceptions import InvalidInput, MultipathError
from .paths import PathSearch, SearchConfig
from .progress import Reporter

logger = logging.getLogger(__name__)

RESAMPLE_TYPES = ('bootstrap', 'subsample')

_RESAMPLE_ERRORS = (
    MultipathError,
    ValueError,
    ArithmeticError,
    np.linalg.LinAlgError,
)


@dataclass(frozen=True)
class StabilityMeta:
    n: int
    p: int
    variable_names: Tuple[str, ...]
    B: int
    resample_type: str
    m: Optional[int]
    family: str
    K: Optional[int]
    eps: float
    delta: float
    L: int
    n_failed: int = 0


@dataclass(frozen=True)
class StabilityResult:
    """
    Attributes
    ----------
    pi : pd.Series
        Stability score per predictor, in [0, 1].
    z_matrix : pd.DataFrame
        Per-resample selection proportions, B rows (``resample_1`` ...)
        by p columns in the original predictor order.
    meta : StabilityMeta
    """

    pi: pd.Series
    z_matrix: pd.DataFrame
    meta: StabilityMeta = field(repr=False)

    def ranking(self):
        """Stability scores sorted from most to least stable."""
        return self.pi.sort_values(ascending=False, kind='stable')

    def summary(self):
        meta = self.meta
        lines = [
            "Variable Stability Analysis",
            "=" * 28,
            f"Number of resamples: B = {meta.B}",
            f"Resample type: {meta.resample_type}",
        ]
        if meta.m is not None:
            lines.append(f"Subsample size: m = {meta.m} (out of n = {meta.n})")
        lines.append(f"Family: {meta.family}")
        if meta.n_failed:
            lines.append(f"Failed resamples (counted as zero): {meta.n_failed}")
        lines += ["", "Stability Scores (pi_j):"]
        for name, value in self.pi.items():
            lines.append(f"  {name:20s}  {value:.3f}")
        return "\n".join(lines)

    def __str__(self):
        return self.summary()


def selection_proportions(path_result, var_names):
    """
    Share of a search's retained models (all depths) containing each
    predictor.  A search that retained nothing gives all zeros.
    """
    position = {name: j for j, name in enumerate(var_names)}
    counts = np.zeros(len(var_names))
    total = 0
    for frontier in path_result.frontiers:
        for model in frontier:
            total += 1
            for v in model.variables:
                counts[position[v]] += 1
    if total == 0:
        return counts
    return counts / total


def _run_resample(X_arr, y, var_names, idx, family, config):
    """One resample: search on the rows ``idx``; returns (z, failed)."""
    search = PathSearch(family=family, K=config.K, eps=config.eps,
                        delta=config.delta, L=config.L)
    try:
        result = search._search(X_arr[idx], y[idx], var_names)
    except _RESAMPLE_ERRORS as exc:
        logger.warning("Resample failed, counting it as zero: %s", exc)
        return np.zeros(len(var_names)), True
    return selection_proportions(result, var_names), False


class StabilityEstimator:
    """
    Estimate predictor stability by re-running the search on resamples.

    Parameters
    ----------
    family : {'gaussian', 'binomial'}, default='gaussian'
    B : int, default=50
        Number of resamples.
    resample_type : {'bootstrap', 'subsample'}, default='bootstrap'
        Bootstrap draws n rows with replacement; subsample draws m rows
        without replacement.
    m : int or None, default=None
        Subsample size; ``None`` means ``ceil(sqrt(n))``.  Ignored for the
        bootstrap.
    K, eps, delta, L :
        Passed through to :class:`~multipathaic.paths.PathSearch`.  With
        ``K=None`` every resample uses ``min(p, 10)``.
    n_jobs : int, default=1
        Worker count for the joblib pool (``-1`` = all cores).
    random_state : int, RandomState or None
        Seeds the resample draws.  Results do not depend on ``n_jobs``.
    verbose : bool, default=False
    progress : callable or None
    """

    def __init__(self, family='gaussian', B=50, resample_type='bootstrap',
                 m=None, K=None, eps=1e-6, delta=1.0, L=50, n_jobs=1,
                 random_state=None, verbose=False, progress=None):
        self.family = check_family(family)
        if resample_type not in RESAMPLE_TYPES:
            raise InvalidInput(
                f"resample_type must be one of {RESAMPLE_TYPES}, "
                f"got {resample_type!r}"
            )
        if int(B) < 1:
            raise InvalidInput(f"B must be a positive integer, got {B}")
        self.B = int(B)
        self.resample_type = resample_type
        self.m = m
        self.config = SearchConfig(K=K, eps=eps, delta=delta, L=L).validate()
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.verbose = verbose
        self.progress = progress

    def run(self, X, y):
        """
        Returns
        -------
        StabilityResult

        Raises
        ------
        InvalidInput
        """
        X, y = check_data(X, y, self.family)
        n, p = X.shape
        var_names = tuple(X.columns)
        X_arr = X.values
        report = Reporter('stability', self.progress, self.verbose)

        m = self._subsample_size(n)
        # Resolve once so the clamp warning is raised here, not per resample
        K = self.config.resolve_K(p)
        config = SearchConfig(K=K, eps=self.config.eps,
                              delta=self.config.delta, L=self.config.L)

        rng = check_random_state(self.random_state)
        draws = [self._draw(rng, n, m) for _ in range(self.B)]

        header = [
            "==============================================",
            "Starting Stability Analysis via Resampling",
            "==============================================",
            f"Number of resamples: B = {self.B}",
            f"Resample type: {self.resample_type}",
        ]
        if m is not None:
            header.append(f"Subsample size: m = {m} (out of n = {n})")
        header.append(f"Family: {self.family}\n")
        report.emit("\n".join(header), B=self.B,
                    resample_type=self.resample_type, m=m)

        tasks = (
            delayed(_run_resample)(X_arr, y, var_names, idx, self.family,
                                   config)
            for idx in draws
        )
        z = np.zeros((self.B, p))
        failed = 0
        results = Parallel(n_jobs=self.n_jobs, return_as='generator')(tasks)
        for b, (z_b, did_fail) in enumerate(results):
            z[b] = z_b
            failed += did_fail
            done = b + 1
            if done == 1 or done % 10 == 0 or done == self.B:
                report.emit(f"  Resample {done} of {self.B}...",
                            resample=done, B=self.B)

        z_matrix = pd.DataFrame(
            z, index=[f"resample_{b + 1}" for b in range(self.B)],
            columns=list(var_names),
        )
        pi = z_matrix.mean(axis=0)
        pi.name = 'pi'

        meta = StabilityMeta(
            n=n, p=p, variable_names=var_names, B=self.B,
            resample_type=self.resample_type, m=m, family=self.family,
            K=K, eps=config.eps, delta=config.delta, L=config.L,
            n_failed=failed,
        )
        result = StabilityResult(pi, z_matrix, meta)

        report.emit("\n==============================================\n"
                    "Stability Analysis Complete\n"
                    "==============================================",
                    n_failed=failed)
        report.emit(result.summary(), pi=pi.to_dict())
        return result

    # ---- internals -------------------------------------------------------

    def _subsample_size(self, n):
        if self.resample_type == 'bootstrap':
            return None
        m = self.m if self.m is not None else math.ceil(math.sqrt(n))
        m = int(m)
        if not 1 <= m <= n:
            raise InvalidInput(
                f"Subsample size m must be between 1 and n = {n}, got {m}"
            )
        return m

    def _draw(self, rng, n, m):
        if self.resample_type == 'bootstrap':
            return rng.choice(n, size=n, replace=True)
        return rng.choice(n, size=m, replace=False)


def stability(X, y, family='gaussian', B=50, resample_type='bootstrap',
              m=None, K=None, eps=1e-6, delta=1.0, L=50, n_jobs=1,
              random_state=None, verbose=False, progress=None):
    """
    Compute variable stability through resampling.

    See :class:`StabilityEstimator` for the parameters.

    Returns
    -------
    StabilityResult
    """
    estimator = StabilityEstimator(
        family=family, B=B, resample_type=resample_type, m=m, K=K, eps=eps,
        delta=delta, L=L, n_jobs=n_jobs, random_state=random_state,
        verbose=verbose, progress=progress,
    )
    return estimator.run(X, y)
