"""Model Evaluator: k-fold cross-validation and correlation-based importance.

Cross-validation fits a linear pipeline (standard scaling + ridge) rather
than the serving LightGBM model, so the reported metrics describe a simpler
baseline over the same features.

Both operations report insufficient data through the result object (zero
folds / no items, with ``row_count`` set) instead of raising.
"""

import logging
from collections.abc import Sequence

import numpy as np
from sklearn.linear_model import Ridge
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import KFold
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler

from config import Settings, settings
from models.responses import (
    CrossValidationMetrics,
    CvFold,
    FeatureImportance,
    FeatureImportanceItem,
)
from models.schemas.feature_row import FeatureRow
from services.pipeline.features import FEATURES, labels, to_matrix

logger = logging.getLogger(__name__)

MIN_EVALUATION_ROWS = 10


def abs_pearson(x: np.ndarray, y: np.ndarray) -> float:
    """|Pearson r| of two equal-length vectors; 0 when either is constant."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape or x.size == 0:
        return 0.0
    dx = x - x.mean()
    dy = y - y.mean()
    sxx = float(np.dot(dx, dx))
    syy = float(np.dot(dy, dy))
    if sxx == 0.0 or syy == 0.0:
        return 0.0
    corr = abs(float(np.dot(dx, dy)) / np.sqrt(sxx * syy))
    return min(1.0, corr)


class ModelEvaluator:
    """Stateless per call; holds only configuration."""

    def __init__(self, config: Settings | None = None) -> None:
        self._cfg = config or settings

    def usable_rows(self, rows: Sequence[FeatureRow]) -> tuple[list[FeatureRow], np.ndarray]:
        """Rows and labels for evaluation under the configured label policy."""
        if self._cfg.evaluation_fills_missing_labels:
            usable = list(rows)
            return usable, labels(usable, default=0.0)
        usable = [r for r in rows if r.is_labeled]
        return usable, labels(usable)

    def _cv_pipeline(self):
        return make_pipeline(StandardScaler(), Ridge(alpha=1.0))

    def cross_validate(self, rows: Sequence[FeatureRow], folds: int = 5) -> CrossValidationMetrics:
        if folds < 2:
            raise ValueError(f"folds must be >= 2, got {folds}")

        usable, y = self.usable_rows(rows)
        result = CrossValidationMetrics(row_count=len(usable))
        if len(usable) < max(MIN_EVALUATION_ROWS, folds):
            logger.info(
                "Cross-validation skipped: %d usable rows (< %d)",
                len(usable), max(MIN_EVALUATION_ROWS, folds),
            )
            return result

        X = to_matrix(usable)
        kfold = KFold(n_splits=folds, shuffle=True, random_state=self._cfg.random_seed)

        for i, (train_idx, test_idx) in enumerate(kfold.split(X), start=1):
            pipeline = self._cv_pipeline()
            pipeline.fit(X[train_idx], y[train_idx])
            preds = pipeline.predict(X[test_idx])
            result.folds.append(CvFold(
                fold=i,
                mae=float(mean_absolute_error(y[test_idx], preds)),
                rmse=float(np.sqrt(mean_squared_error(y[test_idx], preds))),
                # R² is undefined on a single held-out row
                r2=float(r2_score(y[test_idx], preds)) if len(test_idx) > 1 else 0.0,
            ))

        result.mean_mae = float(np.mean([f.mae for f in result.folds]))
        result.mean_rmse = float(np.mean([f.rmse for f in result.folds]))
        result.mean_r2 = float(np.mean([f.r2 for f in result.folds]))
        logger.info(
            "Cross-validation over %d rows, %d folds: MAE=%.3f RMSE=%.3f R2=%.3f",
            len(usable), folds, result.mean_mae, result.mean_rmse, result.mean_r2,
        )
        return result

    def feature_importance(self, rows: Sequence[FeatureRow]) -> FeatureImportance:
        usable, y = self.usable_rows(rows)
        result = FeatureImportance(row_count=len(usable))
        if len(usable) < MIN_EVALUATION_ROWS:
            logger.info("Feature importance skipped: %d usable rows", len(usable))
            return result

        X = to_matrix(usable)
        items = [
            FeatureImportanceItem(feature_name=name, abs_correlation=abs_pearson(X[:, col], y))
            for col, (name, _) in enumerate(FEATURES)
        ]
        result.items = sorted(items, key=lambda item: item.abs_correlation, reverse=True)
        return result
