"""
Tests for plausible-model selection.
"""

import itertools

import numpy as np
import pandas as pd
import pytest

from multipathaic import (FittedModel, InvalidInput, Model, PathSearchResult,
                          StabilityResult, build_paths, plausible_models,
                          variable_importance_ranking)
from multipathaic.paths import SearchMeta
from multipathaic.plausible import jaccard_similarity
from multipathaic.stability import StabilityMeta


def _search_result(frontiers, names=('a', 'b', 'c', 'd', 'e')):
    """Hand-built search result from lists of (variables, aic)."""
    built = tuple(
        tuple(Model.from_variables(vs, aic) for vs, aic in frontier)
        for frontier in frontiers
    )
    aic_by_model = {m.model_id: m.aic for f in built for m in f}
    meta = SearchMeta(n=50, p=len(names), variable_names=tuple(names),
                      family='gaussian', K=len(built), eps=1e-6, delta=1.0,
                      L=50)
    return PathSearchResult(built, aic_by_model, 200.0, meta)


def _stability_result(pi):
    pi = pd.Series(pi, dtype=float)
    z = pd.DataFrame([pi.values], index=['resample_1'], columns=pi.index)
    meta = StabilityMeta(n=50, p=len(pi), variable_names=tuple(pi.index),
                         B=1, resample_type='bootstrap', m=None,
                         family='gaussian', K=3, eps=1e-6, delta=1.0, L=50)
    return StabilityResult(pi, z, meta)


def _linear_data(n=150, seed=3):
    rng = np.random.RandomState(seed)
    X = pd.DataFrame(rng.randn(n, 5), columns=['x1', 'x2', 'x3', 'x4', 'x5'])
    y = X['x1'] + 0.5 * X['x2'] + rng.randn(n)
    return X, y


def test_jaccard_similarity():
    universe = ['a', 'b', 'c', 'd']
    assert jaccard_similarity(('a', 'b', 'c'), ('a', 'b', 'c', 'd'),
                              universe) == pytest.approx(0.75)
    assert jaccard_similarity(('a',), ('b',), universe) == 0.0
    assert jaccard_similarity(('a', 'b'), ('b', 'a'), universe) == 1.0


def test_delta_window_and_ordering():
    paths = _search_result([
        [(('a',), 110.0), (('b',), 111.5)],
        [(('a', 'b'), 100.0), (('a', 'c'), 101.0), (('a', 'd'), 103.0)],
    ])
    result = plausible_models(paths, Delta=2, remove_duplicates=False)

    assert [e.model_id for e in result] == ['a+b', 'a+c']
    assert result.aic_min == 100.0
    assert [e.delta_aic for e in result] == [0.0, 1.0]
    assert all(e.avg_stability is None for e in result)
    assert all(e.fitted is None for e in result)
    assert result.best().model_id == 'a+b'


def test_stability_filter_uses_mean_of_pi():
    paths = _search_result([
        [(('a', 'b'), 100.0), (('a', 'c'), 100.5), (('c', 'd'), 101.0)],
    ])
    stab = _stability_result({'a': 0.9, 'b': 0.7, 'c': 0.4, 'd': 0.2,
                              'e': 0.0})
    result = plausible_models(paths, stab, Delta=5, tau=0.6,
                              remove_duplicates=False)

    assert [e.model_id for e in result] == ['a+b', 'a+c']
    assert result[0].avg_stability == pytest.approx(0.8)
    assert result[1].avg_stability == pytest.approx(0.65)
    assert all(e.avg_stability >= 0.6 for e in result)


def test_unreachable_tau_gives_empty_set():
    paths = _search_result([[(('a',), 100.0), (('b',), 100.5)]])
    stab = _stability_result({n: 1.0 for n in 'abcde'})
    result = plausible_models(paths, stab, tau=1.01)

    assert len(result) == 0
    assert result.best() is None
    df = result.to_frame()
    assert df.empty
    assert list(df.columns) == ['model_id', 'size', 'variables', 'aic',
                                'delta_aic', 'avg_stability']
    assert 'No models passed' in result.summary()


def test_tau_ignored_without_stability():
    paths = _search_result([[(('a',), 100.0), (('b',), 100.5)]])
    result = plausible_models(paths, None, tau=1.01)
    assert len(result) == 2
    assert result.tau is None


def test_near_duplicates_keep_better_aic():
    paths = _search_result([
        [(('e',), 104.0)],
        [(('a', 'b', 'c'), 100.0), (('d', 'e'), 103.5)],
        [(('a', 'b', 'c', 'd'), 100.5)],
    ])
    result = plausible_models(paths, Delta=10, jaccard_threshold=0.7)
    # a+b+c+d is 0.75 similar to the better a+b+c; e+d vs e is 0.5
    assert [e.model_id for e in result] == ['a+b+c', 'd+e', 'e']


def test_exact_aic_tie_drops_later_model():
    paths = _search_result([
        [(('a', 'b'), 100.0), (('a', 'c'), 100.0)],
    ])
    result = plausible_models(paths, Delta=2, jaccard_threshold=0.3)
    assert [e.model_id for e in result] == ['a+b']


def test_retained_pairs_respect_threshold():
    X, y = _linear_data()
    paths = build_paths(X, y, K=4, delta=3)
    result = plausible_models(paths, Delta=6, jaccard_threshold=0.5)
    names = paths.meta.variable_names
    assert len(result) >= 1
    for a, b in itertools.combinations(result, 2):
        assert jaccard_similarity(a.variables, b.variables, names) <= 0.5
    for e in result:
        assert e.aic <= result.aic_min + 6


def test_refit_attaches_fitted_models():
    X, y = _linear_data()
    paths = build_paths(X, y, K=3, delta=2)
    result = plausible_models(paths, Delta=4, refit=True, X=X, y=y)
    assert len(result) >= 1
    for e in result:
        assert isinstance(e.fitted, FittedModel)
        assert e.fitted.variables == e.variables
        assert e.fitted.aic == pytest.approx(e.aic)
    best = result.best().fitted
    assert best.coefficients['x1'] == pytest.approx(1.0, abs=0.3)


def test_refit_requires_data():
    paths = _search_result([[(('a',), 100.0)]])
    with pytest.raises(InvalidInput):
        plausible_models(paths, refit=True)
    with pytest.raises(InvalidInput):
        plausible_models(paths, refit=True, X=np.zeros((50, 5)))


def test_refit_with_renamed_predictors_fails():
    X, y = _linear_data()
    paths = build_paths(X, y, K=2)
    renamed = X.rename(columns={'x1': 'X1'})
    with pytest.raises(InvalidInput):
        plausible_models(paths, refit=True, X=renamed, y=y)
    with pytest.raises(InvalidInput):
        plausible_models(paths, refit=True, X=X, y=y[:-5])


def test_empty_search_result_is_invalid():
    paths = _search_result([])
    with pytest.raises(InvalidInput):
        plausible_models(paths)


def test_stability_must_cover_model_predictors():
    paths = _search_result([[(('a', 'b'), 100.0)]])
    stab = _stability_result({'a': 0.9})
    with pytest.raises(InvalidInput):
        plausible_models(paths, stab)


def test_variable_importance_ranking():
    paths = _search_result([
        [(('a',), 110.0), (('b',), 110.5)],
        [(('a', 'b'), 100.0), (('a', 'c'), 100.8)],
    ])
    stab = _stability_result({'a': 0.9, 'b': 0.5, 'c': 0.3, 'd': 0.0,
                              'e': 0.1})
    plaus = plausible_models(paths, stab, Delta=2, tau=0.5)
    ranking = variable_importance_ranking(paths, stab, plaus)

    assert list(ranking['variable']) == ['a', 'b', 'c', 'e', 'd']
    row = ranking.set_index('variable')
    assert row.loc['a', 'path_frequency'] == pytest.approx(0.75)
    assert row.loc['a', 'first_step'] == 1
    assert row.loc['c', 'first_step'] == 2
    assert np.isnan(row.loc['d', 'first_step'])
    assert row.loc['a', 'plausible_frequency'] == 1.0
