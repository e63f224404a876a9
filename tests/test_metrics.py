"""
Tests for classification metrics on fitted logistic models.
"""

import numpy as np
import pandas as pd
import pytest

from multipathaic import (InvalidInput, ModelFitter, classification_metrics,
                          confusion_metrics)
from multipathaic.metrics import format_confusion_matrix


def _values(result):
    return dict(zip(result.metrics['Metric'], result.metrics['Value']))


def test_balanced_errors():
    y = [0, 0, 1, 1]
    probs = [0.1, 0.6, 0.4, 0.9]
    result = classification_metrics(y, probs)

    assert list(result.predicted_class) == [0, 1, 0, 1]
    # rows = predicted, columns = actual
    assert result.confusion_matrix.loc[1, 0] == 1   # false positive
    assert result.confusion_matrix.loc[0, 1] == 1   # false negative
    for name, value in _values(result).items():
        assert value == pytest.approx(0.5), name


def test_no_positive_labels_gives_zero_not_nan():
    result = classification_metrics([0, 0, 0], [0.1, 0.2, 0.3])
    values = _values(result)
    assert values['Accuracy'] == 1.0
    assert values['Specificity'] == 1.0
    assert values['Sensitivity'] == 0.0
    assert values['Precision'] == 0.0
    assert values['F1 Score'] == 0.0
    assert values['FDR'] == 0.0
    assert not result.metrics['Value'].isna().any()


def test_no_negative_labels_gives_zero_specificity():
    values = _values(classification_metrics([1, 1], [0.9, 0.8]))
    assert values['Sensitivity'] == 1.0
    assert values['Specificity'] == 0.0


def test_threshold_is_inclusive():
    result = classification_metrics([0, 1], [0.3, 0.3], threshold=0.3)
    assert list(result.predicted_class) == [1, 1]


def test_non_binary_labels_rejected():
    with pytest.raises(InvalidInput):
        classification_metrics([0, 2], [0.1, 0.9])
    with pytest.raises(InvalidInput):
        classification_metrics([0, 1, 1], [0.1, 0.9])


def test_confusion_metrics_on_fitted_logistic_model():
    rng = np.random.RandomState(42)
    n = 200
    X = pd.DataFrame({'a': rng.randn(n), 'b': rng.randn(n)})
    y = (rng.rand(n) < 1 / (1 + np.exp(-3 * X['a']))).astype(int)

    fitted = ModelFitter('binomial').fit(X, y, ['a'])
    result = confusion_metrics(fitted, X, y)

    assert result.confusion_matrix.values.sum() == n
    assert _values(result)['Accuracy'] > 0.7
    assert np.all((result.predicted_probs >= 0) & (result.predicted_probs <= 1))
    assert 'Confusion Matrix:' in format_confusion_matrix(
        result.confusion_matrix)


def test_confusion_metrics_requires_binomial_model():
    rng = np.random.RandomState(0)
    X = pd.DataFrame({'a': rng.randn(30)})
    y = X['a'] + rng.randn(30)
    fitted = ModelFitter('gaussian').fit(X, y, ['a'])
    with pytest.raises(InvalidInput):
        confusion_metrics(fitted, X, (y > 0).astype(int))
