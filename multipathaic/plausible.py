"""
Plausible-model selection.

Combines a search result with (optionally) stability scores:

1.  pool every model retained by the search;
2.  keep models with AIC <= min AIC + Delta;
3.  keep models whose mean predictor stability is >= tau;
4.  drop near-duplicates (Jaccard similarity above a threshold), keeping
    the better-AIC model of each similar pair;
5.  rank by AIC and, optionally, refit each survivor on the full data.

An empty outcome is a valid answer ("no plausible model"), not an error.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy.spatial.distance import jaccard

from ._validation import check_X, check_y
from .exceptions import InvalidInput
from .fitting import FittedModel, ModelFitter
from .paths import Model
from .progress import Reporter

TABLE_COLUMNS = ['model_id', 'size', 'variables', 'aic', 'delta_aic',
                 'avg_stability']


def jaccard_similarity(a, b, universe):
    """|A & B| / |A | B| for two variable sets over ``universe``."""
    u = np.array([v in a for v in universe], dtype=bool)
    v = np.array([v in b for v in universe], dtype=bool)
    if not (u.any() or v.any()):
        return 1.0
    return 1.0 - jaccard(u, v)


@dataclass(frozen=True)
class PlausibleModel:
    model: Model
    aic: float
    delta_aic: float
    avg_stability: Optional[float] = None
    fitted: Optional[FittedModel] = None

    @property
    def model_id(self):
        return self.model.model_id

    @property
    def variables(self):
        return self.model.variables

    @property
    def size(self):
        return self.model.size


@dataclass(frozen=True)
class PlausibleModelSet:
    """
    Plausible models ranked by AIC.

    Attributes
    ----------
    entries : tuple of PlausibleModel
    aic_min : float
        Minimum AIC over every model the search retained.
    Delta, tau, jaccard_threshold : float
        Filter settings (``tau`` is None when no stability was used).
    """

    entries: Tuple[PlausibleModel, ...]
    aic_min: float
    Delta: float
    tau: Optional[float] = None
    jaccard_threshold: Optional[float] = None
    refit: bool = field(default=False, repr=False)

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, i):
        return self.entries[i]

    def best(self):
        return self.entries[0] if self.entries else None

    def to_frame(self):
        rows = [{
            'model_id': e.model_id,
            'size': e.size,
            'variables': ', '.join(e.variables) if e.variables
                         else '(intercept only)',
            'aic': e.aic,
            'delta_aic': e.delta_aic,
            'avg_stability': (np.nan if e.avg_stability is None
                              else e.avg_stability),
        } for e in self.entries]
        return pd.DataFrame(rows, columns=TABLE_COLUMNS)

    def summary(self):
        lines = [
            "Plausible Models",
            "=" * 16,
            f"Delta (AIC window): {self.Delta:g}",
        ]
        if self.tau is not None:
            lines.append(f"tau (min avg stability): {self.tau:g}")
        if not self.entries:
            lines += ["", "No models passed the plausibility filters."]
            return "\n".join(lines)
        lines += ["", f"{len(self.entries)} plausible model(s):"]
        for rank, e in enumerate(self.entries, start=1):
            stab = ('' if e.avg_stability is None
                    else f"  avg_stability = {e.avg_stability:.3f}")
            lines.append(f"  {rank:2d}. {e.model_id:40s}  AIC = {e.aic:.4f}  "
                         f"dAIC = {e.delta_aic:.4f}{stab}")
        return "\n".join(lines)

    def __str__(self):
        return self.summary()


class PlausibleFilter:
    """
    Select plausible models from a search (and stability) result.

    Parameters
    ----------
    Delta : float, default=2.0
        AIC tolerance around the best model.
    tau : float, default=0.6
        Minimum average stability of a model's predictors.  Ignored when
        no stability result is supplied.
    remove_duplicates : bool, default=True
        Drop near-duplicate models by Jaccard similarity.
    jaccard_threshold : float, default=0.9
        Pairs with similarity strictly above this are duplicates.
    refit : bool, default=False
        Refit every plausible model on the full ``(X, y)``.
    verbose : bool, default=False
    progress : callable or None
    """

    def __init__(self, Delta=2.0, tau=0.6, remove_duplicates=True,
                 jaccard_threshold=0.9, refit=False, verbose=False,
                 progress=None):
        if Delta < 0:
            raise InvalidInput(f"Delta must be non-negative, got {Delta}")
        if not 0 <= jaccard_threshold <= 1:
            raise InvalidInput(
                f"jaccard_threshold must lie in [0, 1], got {jaccard_threshold}"
            )
        self.Delta = Delta
        self.tau = tau
        self.remove_duplicates = remove_duplicates
        self.jaccard_threshold = jaccard_threshold
        self.refit = refit
        self.verbose = verbose
        self.progress = progress

    def run(self, path_result, stability_result=None, X=None, y=None):
        """
        Returns
        -------
        PlausibleModelSet

        Raises
        ------
        InvalidInput
            Empty search result, refit without data, predictor names that do
            not match the search.
        """
        report = Reporter('plausible', self.progress, self.verbose)
        meta = path_result.meta

        if self.refit:
            X, y = self._check_refit_data(path_result, X, y)

        models = path_result.models()
        if not models:
            raise InvalidInput("The path search result contains no models.")

        aic_min = min(m.aic for m in models)
        candidates = [m for m in models if m.aic <= aic_min + self.Delta]
        report.emit(f"{len(candidates)} of {len(models)} models within "
                    f"Delta = {self.Delta:g} of the best AIC ({aic_min:.4f})",
                    n_models=len(models), n_within_delta=len(candidates))

        stabilities = {}
        if stability_result is not None:
            pi = stability_result.pi
            for model in candidates:
                stabilities[model.model_id] = average_stability(model, pi)
            candidates = [m for m in candidates
                          if stabilities[m.model_id] >= self.tau]
            report.emit(f"{len(candidates)} models with average stability "
                        f">= {self.tau:g}", n_stable=len(candidates))

        candidates = sorted(candidates, key=lambda m: m.aic)
        if self.remove_duplicates:
            candidates = self._drop_near_duplicates(candidates,
                                                    meta.variable_names)
            report.emit(f"{len(candidates)} models after removing "
                        f"near-duplicates (Jaccard > "
                        f"{self.jaccard_threshold:g})",
                        n_unique=len(candidates))

        fitter = ModelFitter(meta.family) if self.refit else None
        entries = []
        for model in candidates:
            fitted = fitter.fit(X, y, model.variables) if fitter else None
            entries.append(PlausibleModel(
                model=model,
                aic=model.aic,
                delta_aic=model.aic - aic_min,
                avg_stability=stabilities.get(model.model_id),
                fitted=fitted,
            ))

        result = PlausibleModelSet(
            entries=tuple(entries),
            aic_min=aic_min,
            Delta=self.Delta,
            tau=self.tau if stability_result is not None else None,
            jaccard_threshold=(self.jaccard_threshold
                               if self.remove_duplicates else None),
            refit=self.refit,
        )
        report.emit(result.summary(), n_plausible=len(entries))
        return result

    # ---- internals -------------------------------------------------------

    def _drop_near_duplicates(self, ranked, universe):
        """Greedy sweep in AIC order: keep a model unless it is too similar
        to one already kept."""
        kept = []
        for model in ranked:
            if all(jaccard_similarity(model.variables, other.variables,
                                      universe) <= self.jaccard_threshold
                   for other in kept):
                kept.append(model)
        return kept

    @staticmethod
    def _check_refit_data(path_result, X, y):
        if X is None or y is None:
            raise InvalidInput("X and y must be provided when refit=True")
        X = check_X(X)
        expected = path_result.meta.variable_names
        missing = [v for v in expected if v not in X.columns]
        if missing:
            raise InvalidInput(
                f"Refit X does not match the searched predictors; "
                f"missing column(s): {missing}"
            )
        y = check_y(y, len(X), path_result.meta.family)
        return X, y


def average_stability(model, pi):
    """Mean stability of a model's predictors (0 for the empty model)."""
    if not model.variables:
        return 0.0
    missing = [v for v in model.variables if v not in pi.index]
    if missing:
        raise InvalidInput(
            f"Stability result has no score for predictor(s): {missing}"
        )
    return float(pi[list(model.variables)].mean())


def plausible_models(path_result, stability_result=None, Delta=2.0, tau=0.6,
                     remove_duplicates=True, jaccard_threshold=0.9,
                     refit=False, X=None, y=None, verbose=False,
                     progress=None):
    """
    Select plausible models.  See :class:`PlausibleFilter`.

    Returns
    -------
    PlausibleModelSet
    """
    selector = PlausibleFilter(Delta=Delta, tau=tau,
                               remove_duplicates=remove_duplicates,
                               jaccard_threshold=jaccard_threshold,
                               refit=refit, verbose=verbose,
                               progress=progress)
    return selector.run(path_result, stability_result, X=X, y=y)


def variable_importance_ranking(path_result, stability_result=None,
                                plausible=None):
    """
    Rank predictors by how consistently they are selected.

    Returns
    -------
    pd.DataFrame
        Columns ``variable``, ``stability``, ``path_frequency``,
        ``first_step`` and ``plausible_frequency``, sorted by stability and
        then path frequency (descending).
    """
    names = list(path_result.meta.variable_names)
    models = path_result.models()

    path_freq = pd.Series(0.0, index=names)
    if models:
        for model in models:
            path_freq[list(model.variables)] += 1
        path_freq /= len(models)

    first_step = pd.Series(np.nan, index=names)
    for step, frontier in enumerate(path_result.frontiers, start=1):
        for model in frontier:
            for v in model.variables:
                if np.isnan(first_step[v]):
                    first_step[v] = step

    if stability_result is not None:
        stab = stability_result.pi.reindex(names)
    else:
        stab = pd.Series(np.nan, index=names)

    plaus_freq = pd.Series(np.nan, index=names)
    if plausible is not None and len(plausible) > 0:
        plaus_freq[:] = 0.0
        for entry in plausible:
            plaus_freq[list(entry.variables)] += 1
        plaus_freq /= len(plausible)

    df = pd.DataFrame({
        'variable': names,
        'stability': stab.values,
        'path_frequency': path_freq.values,
        'first_step': first_step.values,
        'plausible_frequency': plaus_freq.values,
    })
    return df.sort_values(['stability', 'path_frequency'],
                          ascending=False, kind='stable',
                          na_position='last').reset_index(drop=True)
