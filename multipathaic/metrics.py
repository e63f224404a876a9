"""
Classification metrics for fitted logistic models.
"""

from collections import namedtuple

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from .exceptions import InvalidInput

METRIC_NAMES = ['Accuracy', 'Sensitivity', 'Specificity', 'Precision',
                'F1 Score', 'FDR']

ConfusionResult = namedtuple(
    'ConfusionResult',
    ['confusion_matrix', 'metrics', 'predicted_probs', 'predicted_class'],
)


def _ratio(num, den):
    # undefined rates (no positives, no predictions, ...) are reported as 0
    return float(num) / den if den > 0 else 0.0


def classification_metrics(y, probabilities, threshold=0.5):
    """
    Confusion matrix and summary rates for 0/1 labels.

    Parameters
    ----------
    y : array-like of 0/1
    probabilities : array-like
        Predicted probability of class 1.
    threshold : float, default=0.5
        Probabilities ``>= threshold`` are classified as 1.

    Returns
    -------
    ConfusionResult
        ``confusion_matrix`` has predicted classes as rows and actual
        classes as columns.
    """
    y = np.asarray(y, dtype=np.float64).ravel()
    probs = np.asarray(probabilities, dtype=np.float64).ravel()
    if len(y) != len(probs):
        raise InvalidInput(
            f"y ({len(y)}) and probabilities ({len(probs)}) differ in length"
        )
    if not np.all((y == 0) | (y == 1)):
        raise InvalidInput("y must be binary (0/1)")

    pred = (probs >= threshold).astype(int)
    actual = y.astype(int)

    # sklearn: rows = actual, columns = predicted
    cm = confusion_matrix(actual, pred, labels=[0, 1])
    tn, fp, fn, tp = cm.ravel()

    sensitivity = _ratio(tp, tp + fn)
    precision = _ratio(tp, tp + fp)
    values = [
        _ratio(tp + tn, tp + tn + fp + fn),
        sensitivity,
        _ratio(tn, tn + fp),
        precision,
        _ratio(2 * precision * sensitivity, precision + sensitivity),
        _ratio(fp, tp + fp),
    ]

    table = pd.DataFrame(
        cm.T,
        index=pd.Index([0, 1], name='Predicted'),
        columns=pd.Index([0, 1], name='Actual'),
    )
    metrics = pd.DataFrame({'Metric': METRIC_NAMES, 'Value': values})
    return ConfusionResult(table, metrics, probs, pred)


def confusion_metrics(fitted_model, X, y, threshold=0.5):
    """
    Classification metrics of a fitted binomial model on ``(X, y)``.

    Parameters
    ----------
    fitted_model : FittedModel
        Must have ``family == 'binomial'``.
    X : array-like
        Must contain the model's predictors by name.
    y : array-like of 0/1
    threshold : float, default=0.5

    Returns
    -------
    ConfusionResult
    """
    if getattr(fitted_model, 'family', None) != 'binomial':
        raise InvalidInput(
            "fitted_model must be a binomial FittedModel"
        )
    probs = fitted_model.predict(X)
    return classification_metrics(y, probs, threshold=threshold)


def format_confusion_matrix(table):
    """Render a confusion matrix the way it is usually read off a page."""
    return "\n".join([
        "Confusion Matrix:",
        "=================",
        "               Actual",
        "Predicted    0    1",
        f"    0      {table.loc[0, 0]:4d} {table.loc[0, 1]:4d}",
        f"    1      {table.loc[1, 0]:4d} {table.loc[1, 1]:4d}",
    ])
