"""
Example: logistic multi-path selection on breast cancer data
=============================================================
Binomial family.  30 standardised tumour measurements predicting whether
a tumour is malignant (n=569), using the MultiPathAIC estimator to run
all three stages at once.
"""

import pandas as pd
from sklearn.datasets import load_breast_cancer
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler

# If running from the repo root (not pip-installed), uncomment:
# import sys; sys.path.insert(0, '..')

from multipathaic import MultiPathAIC, confusion_metrics
from multipathaic.metrics import format_confusion_matrix

# ------------------------------------------------------------------
# 1.  Load and standardise
# ------------------------------------------------------------------
data = load_breast_cancer(as_frame=True)
X = data.data
X.columns = [c.replace(' ', '_') for c in X.columns]
y = (data.target == 0).astype(int)          # malignant = 1

X_train, X_test, y_train, y_test = train_test_split(
    X, y, test_size=0.2, stratify=y, random_state=2025
)
scaler = StandardScaler().fit(X_train)
X_train = pd.DataFrame(scaler.transform(X_train), columns=X.columns)
X_test = pd.DataFrame(scaler.transform(X_test), columns=X.columns)

print(f"Training set: {len(X_train)} observations, "
      f"{int(y_train.sum())} malignant\n")

# ------------------------------------------------------------------
# 2.  Fit
# ------------------------------------------------------------------
model = MultiPathAIC(family='binomial', K=6, delta=2, L=30, B=20,
                     Delta=2, tau=0.5, n_jobs=-1, random_state=2025)
model.fit(X_train, y_train, verbose=True)

# ------------------------------------------------------------------
# 3.  Evaluate on held-out data
# ------------------------------------------------------------------
result = confusion_metrics(model.best_model_, X_test, y_test)
print()
print(format_confusion_matrix(result.confusion_matrix))
print()
print(result.metrics.round(4).to_string(index=False))

print("\nVariable importance:")
print(model.get_variable_importance().head(10).round(3).to_string(index=False))
