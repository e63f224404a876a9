"""
End-to-end estimator: search, stability, plausible models in one ``fit``.
"""

import time

import numpy as np
from sklearn.base import BaseEstimator

from ._validation import check_data
from .fitting import ModelFitter
from .paths import PathSearch
from .plausible import (PlausibleFilter, PlausibleModelSet,
                        variable_importance_ranking)
from .stability import StabilityEstimator


class MultiPathAIC(BaseEstimator):
    """
    Multi-path AIC selection with stability-filtered plausible models.

    Parameters
    ----------
    family : {'gaussian', 'binomial'}, default='gaussian'
    K : int or None, default=None
        Maximum model size (``None`` -> ``min(p, 10)``).
    eps : float, default=1e-6
        Minimum AIC improvement needed to expand a model.
    delta : float, default=1.0
        AIC window for keeping near-tied children.
    L : int, default=50
        Maximum models per step.
    use_stability : bool, default=True
        Run the resampling stage and filter plausible models by ``tau``.
    B : int, default=50
        Number of resamples.
    resample_type : {'bootstrap', 'subsample'}, default='bootstrap'
    m : int or None, default=None
        Subsample size (``None`` -> ``ceil(sqrt(n))``).
    Delta : float, default=2.0
        AIC window for plausible models.
    tau : float, default=0.6
        Minimum average stability for plausible models.
    remove_duplicates : bool, default=True
    jaccard_threshold : float, default=0.9
    n_jobs : int, default=1
        Workers for the resampling stage.
    random_state : int, RandomState or None, default=None
    """

    def __init__(
        self,
        family='gaussian',
        K=None,
        eps=1e-6,
        delta=1.0,
        L=50,
        use_stability=True,
        B=50,
        resample_type='bootstrap',
        m=None,
        Delta=2.0,
        tau=0.6,
        remove_duplicates=True,
        jaccard_threshold=0.9,
        n_jobs=1,
        random_state=None,
    ):
        self.family = family
        self.K = K
        self.eps = eps
        self.delta = delta
        self.L = L
        self.use_stability = use_stability
        self.B = B
        self.resample_type = resample_type
        self.m = m
        self.Delta = Delta
        self.tau = tau
        self.remove_duplicates = remove_duplicates
        self.jaccard_threshold = jaccard_threshold
        self.n_jobs = n_jobs
        self.random_state = random_state

    # ---- public interface ------------------------------------------------

    def fit(self, X, y, verbose=True, progress=None):
        """
        Run the three stages on ``(X, y)``.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
        y : array-like of shape (n_samples,)
        verbose : bool, default=True
            Print progress and a final summary.
        progress : callable or None
            Receives progress events from every stage.

        Returns
        -------
        self
        """
        t0 = time.time()
        X, y = check_data(X, y, self.family)
        n, p = X.shape
        search_params = dict(family=self.family, K=self.K, eps=self.eps,
                             delta=self.delta, L=self.L)

        if verbose:
            print("=" * 70)
            print("MULTI-PATH AIC SELECTION")
            print("=" * 70)
            print(f"  Dataset : n={n}, p={p}, family={self.family}")
            print()
            print("STEP 1: MULTI-PATH SEARCH")
            print("-" * 70)
        self.paths_ = PathSearch(progress=progress,
                                 **search_params).run(X, y)
        if verbose:
            print(self.paths_.summary())

        self.stability_ = None
        if self.use_stability:
            if verbose:
                print("\nSTEP 2: STABILITY (B={}, {})".format(
                    self.B, self.resample_type))
                print("-" * 70)
            self.stability_ = StabilityEstimator(
                B=self.B, resample_type=self.resample_type, m=self.m,
                n_jobs=self.n_jobs, random_state=self.random_state,
                progress=progress, **search_params,
            ).run(X, y)
            if verbose:
                print(self.stability_.summary())

        if verbose:
            print("\nSTEP 3: PLAUSIBLE MODELS")
            print("-" * 70)
        if self.paths_.n_models > 0:
            self.plausible_ = PlausibleFilter(
                Delta=self.Delta, tau=self.tau,
                remove_duplicates=self.remove_duplicates,
                jaccard_threshold=self.jaccard_threshold,
                refit=True, progress=progress,
            ).run(self.paths_, self.stability_, X=X, y=y)
        else:
            self.plausible_ = None

        self.best_model_ = self._choose_best(X, y)
        self.runtime_ = time.time() - t0

        if verbose:
            self._print_summary()
        return self

    def predict(self, X):
        """Mean response of the best model (probabilities for binomial)."""
        self._check_fitted()
        return self.best_model_.predict(X)

    def get_plausible_models(self):
        """Plausible models as a DataFrame (empty if none survived)."""
        self._check_fitted()
        if self.plausible_ is None:
            return PlausibleModelSet((), np.nan, self.Delta).to_frame()
        return self.plausible_.to_frame()

    def get_variable_importance(self):
        self._check_fitted()
        return variable_importance_ranking(self.paths_, self.stability_,
                                           self.plausible_)

    # ---- internals -------------------------------------------------------

    def _choose_best(self, X, y):
        """Best plausible model; otherwise the best searched model, and the
        intercept-only model when the search kept nothing."""
        if self.plausible_ is not None and len(self.plausible_) > 0:
            self.selected_from_ = 'plausible'
            return self.plausible_.best().fitted
        best = self.paths_.best_model()
        self.selected_from_ = 'search' if best is not None else 'null'
        variables = best.variables if best is not None else ()
        return ModelFitter(self.family).fit(X, y, variables)

    def _print_summary(self):
        print()
        print("=" * 70)
        print("FINAL MODEL SUMMARY")
        print("=" * 70)
        if self.plausible_ is not None:
            print(self.plausible_.summary())
        print(f"\nSelected model ({self.selected_from_}):")
        print("-" * 70)
        print(f"  {'Variable':20s}  {'Coefficient':>12s}")
        for name, coef in self.best_model_.coefficients.items():
            print(f"  {name:20s}  {coef:>12.6f}")
        print(f"\n  AIC                    : {self.best_model_.aic:.4f}")
        print(f"  Runtime                : {self.runtime_:.2f}s")
        print("=" * 70)

    def _check_fitted(self):
        if not hasattr(self, 'best_model_'):
            raise RuntimeError(
                "Model has not been fitted. Call .fit(X, y) first."
            )


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

def fit_multipath(X, y, family='gaussian', K=None, B=50, random_state=None,
                  verbose=True):
    """
    One-liner convenience function.

    Returns
    -------
    MultiPathAIC
        Fitted estimator.
    """
    mdl = MultiPathAIC(family=family, K=K, B=B, random_state=random_state)
    mdl.fit(X, y, verbose=verbose)
    return mdl
