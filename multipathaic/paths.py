"""
Multi-path forward selection scored by AIC.

Instead of following the single best addition at each step, the search
keeps every child that is within ``delta`` AIC of the best child of its
parent, so several competing paths through the model space are explored
at once.

    depth 0 : the intercept-only model
    depth k : for every parent at depth k-1, add each unused predictor;
              keep the children within delta of that parent's best child,
              provided the best child improves on the parent by >= eps;
              pool, de-duplicate by variable set, keep the L best.

The search stops early as soon as a depth produces no children.
"""

import logging
import numbers
import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from ._validation import check_data, check_family
from .exceptions import FitFailure, InvalidInput
from .fitting import ModelFitter
from .progress import Reporter

logger = logging.getLogger(__name__)

EMPTY_ID = 'EMPTY'


def model_to_string(variables):
    """Canonical identifier of a variable set (order-insensitive)."""
    if len(variables) == 0:
        return EMPTY_ID
    return '+'.join(sorted(variables))


@dataclass(frozen=True)
class Model:
    """A candidate regression: a set of predictors and its AIC."""

    variables: Tuple[str, ...]
    aic: float
    model_id: str
    parent_id: Optional[str] = None

    @classmethod
    def from_variables(cls, variables, aic, parent_id=None):
        variables = tuple(sorted(variables))
        return cls(variables, float(aic), model_to_string(variables),
                   parent_id)

    @property
    def size(self):
        return len(self.variables)


@dataclass(frozen=True)
class SearchConfig:
    """Tuning parameters of the multi-path search."""

    K: Optional[int] = None      # max steps; None -> min(p, 10)
    eps: float = 1e-6            # min AIC improvement to expand a parent
    delta: float = 1.0           # near-tie window around a parent's best child
    L: int = 50                  # max models kept per step

    def validate(self):
        if self.K is not None and not _is_positive_int(self.K):
            raise InvalidInput(f"K must be a positive integer, got {self.K}")
        if not _is_non_negative(self.eps):
            raise InvalidInput(
                f"eps must be finite and non-negative, got {self.eps}")
        if not _is_non_negative(self.delta):
            raise InvalidInput(
                f"delta must be finite and non-negative, got {self.delta}")
        if not _is_positive_int(self.L):
            raise InvalidInput(f"L must be a positive integer, got {self.L}")
        return self

    def resolve_K(self, p):
        if self.K is None:
            return min(p, 10)
        K = int(self.K)
        if K > p:
            warnings.warn(
                f"K ({K}) is larger than the number of predictors; "
                f"setting K = {p}",
                UserWarning, stacklevel=3,
            )
            K = p
        return K


def _is_positive_int(value):
    return (isinstance(value, numbers.Integral)
            and not isinstance(value, bool) and value >= 1)


def _is_non_negative(value):
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and np.isfinite(value) and value >= 0)


@dataclass(frozen=True)
class SearchMeta:
    n: int
    p: int
    variable_names: Tuple[str, ...]
    family: str
    K: int
    eps: float
    delta: float
    L: int
    n_failed_fits: int = 0


@dataclass(frozen=True)
class PathSearchResult:
    """
    Output of one multi-path search.

    Attributes
    ----------
    frontiers : tuple of tuple of Model
        ``frontiers[k - 1]`` holds the models retained at depth ``k``,
        sorted by AIC.  May be shorter than ``K`` (early stop) or empty.
    aic_by_model : mapping
        Read-only model id -> AIC for every retained model.
    null_aic : float
        AIC of the intercept-only model the search started from.
    meta : SearchMeta
    """

    frontiers: Tuple[Tuple[Model, ...], ...]
    aic_by_model: Mapping[str, float]
    null_aic: float
    meta: SearchMeta = field(repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'aic_by_model',
                           MappingProxyType(dict(self.aic_by_model)))

    @property
    def n_steps(self):
        return len(self.frontiers)

    def models(self):
        """All retained models, de-duplicated by id, in depth order."""
        seen = {}
        for frontier in self.frontiers:
            for model in frontier:
                seen.setdefault(model.model_id, model)
        return list(seen.values())

    @property
    def n_models(self):
        return len(self.models())

    def best_model(self):
        models = self.models()
        if not models:
            return None
        return min(models, key=lambda m: m.aic)

    def to_frame(self):
        """One row per unique model, sorted by AIC."""
        rows = {}
        for step, frontier in enumerate(self.frontiers, start=1):
            for model in frontier:
                rows[model.model_id] = {
                    'model_id': model.model_id,
                    'size': model.size,
                    'variables': (', '.join(model.variables)
                                  if model.variables else '(intercept only)'),
                    'aic': model.aic,
                    'step': step,
                }
        df = pd.DataFrame(list(rows.values()),
                          columns=['model_id', 'size', 'variables', 'aic',
                                   'step'])
        return df.sort_values('aic', kind='stable').reset_index(drop=True)

    def summary(self):
        meta = self.meta
        lines = [
            "Multi-Path Forward Selection Results",
            "=" * 40,
            f"Family: {meta.family}",
            f"Observations: n = {meta.n}",
            f"Predictors: p = {meta.p}",
            f"Parameters: K = {meta.K}, eps = {meta.eps:g}, "
            f"delta = {meta.delta:g}, L = {meta.L}",
            f"Null model AIC: {self.null_aic:.4f}",
            f"Steps completed: {self.n_steps}",
            "",
            "Models per step:",
        ]
        for step, frontier in enumerate(self.frontiers, start=1):
            best = min(m.aic for m in frontier)
            lines.append(f"  Step {step}: {len(frontier):3d} models "
                         f"(best AIC = {best:.4f})")
        best = self.best_model()
        if best is not None:
            lines += ["", f"Best model: {best.model_id}  (AIC = {best.aic:.4f})"]
        if meta.n_failed_fits:
            lines.append(f"Failed fits (scored +inf): {meta.n_failed_fits}")
        return "\n".join(lines)

    def __str__(self):
        return self.summary()


class PathSearch:
    """
    Breadth-first multi-path forward selection.

    Parameters
    ----------
    family : {'gaussian', 'binomial'}, default='gaussian'
    K : int or None, default=None
        Maximum model size.  ``None`` means ``min(p, 10)``; values above
        ``p`` are clamped with a warning.
    eps : float, default=1e-6
        Minimum AIC improvement of a parent's best child for the parent to
        be expanded.
    delta : float, default=1.0
        Children within ``delta`` of their parent's best child are kept.
        ``delta=0`` keeps only the best child (plus exact ties).
    L : int, default=50
        Maximum number of models retained per step.
    verbose : bool, default=False
        Print progress.
    progress : callable or None
        Receives :class:`~multipathaic.progress.ProgressEvent` records.
    """

    def __init__(self, family='gaussian', K=None, eps=1e-6, delta=1.0, L=50,
                 verbose=False, progress=None):
        self.family = check_family(family)
        self.config = SearchConfig(K=K, eps=eps, delta=delta, L=L).validate()
        self.verbose = verbose
        self.progress = progress

    def run(self, X, y):
        """
        Run the search on predictors ``X`` and response ``y``.

        Returns
        -------
        PathSearchResult

        Raises
        ------
        InvalidInput
            Malformed shapes, non-numeric data, bad parameters.
        """
        X, y = check_data(X, y, self.family)
        return self._search(X.values, y, tuple(X.columns))

    # ---- internals -------------------------------------------------------

    def _search(self, X_arr, y, var_names):
        n, p = X_arr.shape
        cfg = self.config
        K = cfg.resolve_K(p)
        report = Reporter('search', self.progress, self.verbose)
        fitter = ModelFitter(self.family)
        col_index = {name: j for j, name in enumerate(var_names)}

        aic_cache = {}
        failures = []

        def score(variables):
            model_id = model_to_string(variables)
            if model_id not in aic_cache:
                cols = [col_index[v] for v in variables]
                try:
                    aic_cache[model_id] = fitter.aic(X_arr[:, cols], y)
                except FitFailure as exc:
                    logger.debug("Fit failed for %s: %s", model_id, exc)
                    failures.append(model_id)
                    aic_cache[model_id] = np.inf
            return aic_cache[model_id]

        report.emit(
            f"Starting multi-path search with:\n"
            f"  n = {n} observations\n"
            f"  p = {p} predictors\n"
            f"  K = {K} maximum steps\n"
            f"  family = {self.family}\n"
            f"  delta = {cfg.delta:.4f}\n"
            f"  eps = {cfg.eps:.6f}\n"
            f"  L = {cfg.L}\n",
            n=n, p=p, K=K,
        )

        empty = Model((), score(()), EMPTY_ID)
        report.emit(f"Step 0: Empty model, AIC = {empty.aic:.2f}\n",
                    depth=0, aic=empty.aic)

        frontiers = []
        aic_by_model = {}
        parents = [empty]

        for k in range(1, K + 1):
            report.emit(f"========== Step {k} ==========\n"
                        f"Starting with {len(parents)} parent models",
                        depth=k, n_parents=len(parents))

            pool = []
            for parent in parents:
                pool.extend(self._expand(parent, var_names, score))

            if not pool:
                report.emit(f"No models improved at step {k}; stopping.\n",
                            depth=k, n_models=0)
                break

            unique = {}
            for child in pool:
                unique.setdefault(child.model_id, child)
            frontier = sorted(unique.values(), key=lambda m: m.aic)
            if len(frontier) > cfg.L:
                frontier = frontier[:cfg.L]

            frontiers.append(tuple(frontier))
            for model in frontier:
                aic_by_model[model.model_id] = model.aic
            parents = frontier

            report.emit(f"Kept {len(frontier)} models "
                        f"(best AIC = {frontier[0].aic:.2f})\n",
                        depth=k, n_models=len(frontier),
                        best_aic=frontier[0].aic)

        meta = SearchMeta(
            n=n, p=p, variable_names=tuple(var_names), family=self.family,
            K=K, eps=cfg.eps, delta=cfg.delta, L=cfg.L,
            n_failed_fits=len(failures),
        )
        return PathSearchResult(tuple(frontiers), aic_by_model, empty.aic,
                                meta)

    def _expand(self, parent, var_names, score):
        """Children of ``parent`` that survive the eps/delta rules."""
        used = set(parent.variables)
        available = [v for v in var_names if v not in used]
        if not available:
            return []

        children = []
        for new_var in available:
            child_vars = parent.variables + (new_var,)
            children.append(Model.from_variables(
                child_vars, score(child_vars), parent.model_id))

        best_child_aic = min(c.aic for c in children)
        if not np.isfinite(best_child_aic):
            return []
        improvement = parent.aic - best_child_aic
        if not improvement >= self.config.eps:
            return []
        return [c for c in children
                if c.aic <= best_child_aic + self.config.delta]


def build_paths(X, y, family='gaussian', K=None, eps=1e-6, delta=1.0, L=50,
                verbose=False, progress=None):
    """
    Multi-path forward selection using AIC.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Predictors; DataFrame column names become predictor identifiers.
    y : array-like of shape (n_samples,)
        Response (0/1 for ``family='binomial'``).
    family : {'gaussian', 'binomial'}
    K, eps, delta, L : see :class:`PathSearch`.
    verbose : bool
    progress : callable or None

    Returns
    -------
    PathSearchResult
    """
    search = PathSearch(family=family, K=K, eps=eps, delta=delta, L=L,
                        verbose=verbose, progress=progress)
    return search.run(X, y)
