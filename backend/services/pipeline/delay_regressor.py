"""Delay Regressor: predicted project delay in days.

Serving model is a LightGBM gradient-boosted tree regressor over the seven
project features. With fewer than ``min_training_rows`` labeled projects a
label-echo fallback is installed instead so the dashboards keep working on
sparse data (it returns the known delay for delivered projects and 0 for
everything else).

The held model is trained lazily on the first prediction and can be replaced
by an explicit ``train()`` call. Replacement swaps one immutable
``TrainedModel`` reference under a lock; inference runs on the reference it
read, so a concurrent retrain never exposes a half-built model.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import lightgbm as lgb
import numpy as np

from config import Settings, settings
from models.schemas.feature_row import FeatureRow
from services.pipeline.base import (
    BaseModelService,
    DelayModel,
    TrainingCancelled,
    TrainingFailure,
)
from services.pipeline.features import FEATURE_NAMES, labels, to_matrix, to_vector

logger = logging.getLogger(__name__)

RowSource = Callable[[], Sequence[FeatureRow]]


class LightGBMDelayModel(DelayModel):
    kind = "lightgbm"

    def __init__(self, booster: lgb.Booster, kind: str = "lightgbm") -> None:
        self.booster = booster
        self.kind = kind

    def predict(self, row: FeatureRow) -> float:
        return float(self.booster.predict(np.array([to_vector(row)], dtype=np.float64))[0])


class LabelEchoModel(DelayModel):
    """Sparse-data placeholder: known delay for delivered projects, else 0."""

    kind = "label_echo"

    def predict(self, row: FeatureRow) -> float:
        if row.label_delay_days is None:
            return 0.0
        return float(row.label_delay_days)


class HeuristicDelayModel(DelayModel):
    """Fixed linear rule used when ``prediction_mode == "heuristic"``.

    Not clamped: negative results stand, same as the trained model.
    """

    kind = "heuristic"

    COEFFICIENTS: dict[str, float] = {
        "length_m": 0.08,
        "base_price": 0.0000015,
        "task_count": 0.06,
        "change_request_count": 4.5,
        "interaction_count": -0.25,
    }

    def predict(self, row: FeatureRow) -> float:
        return (
            self.COEFFICIENTS["length_m"] * row.length_m
            + self.COEFFICIENTS["base_price"] * row.base_price
            + self.COEFFICIENTS["task_count"] * row.task_count
            + self.COEFFICIENTS["change_request_count"] * row.change_request_count
            + self.COEFFICIENTS["interaction_count"] * row.interaction_count
        )


@dataclass(frozen=True)
class TrainedModel:
    model: DelayModel
    row_count: int
    trained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def kind(self) -> str:
        return self.model.kind


class DelayRegressorService(BaseModelService):
    model_name = "delay_regressor"

    def __init__(
        self,
        row_source: RowSource | None = None,
        config: Settings | None = None,
    ) -> None:
        self._cfg = config or settings
        self._row_source = row_source
        self._held: TrainedModel | None = None
        self._swap_lock = threading.Lock()
        self._train_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Install a pre-trained LightGBM model file if one is configured.

        A missing file is not an error: the service stays untrained and
        fits on first use. A file that exists but cannot be parsed raises.
        """
        model_file = self._cfg.delay_model_file
        if not model_file:
            logger.info("No pre-trained delay model configured, will train on first use")
            return

        path = Path(model_file)
        if not path.exists():
            logger.info("Delay model file %s not found, will train on first use", path)
            return

        booster = lgb.Booster(model_file=str(path))
        self._swap(TrainedModel(LightGBMDelayModel(booster, kind="pretrained"), row_count=0))
        logger.info("Delay model loaded from %s", path)

    @property
    def is_trained(self) -> bool:
        return self.current() is not None

    def current(self) -> TrainedModel | None:
        with self._swap_lock:
            return self._held

    def _swap(self, trained: TrainedModel) -> None:
        with self._swap_lock:
            self._held = trained

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(
        self,
        rows: Sequence[FeatureRow] | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """Fit a new model and swap it in. Returns the labeled row count used.

        ``rows`` defaults to the configured row source. ``cancel`` is checked
        before reading rows and before fitting; a fit in progress always
        completes.
        """
        with self._train_lock:
            _check_cancelled(cancel)
            if rows is None:
                if self._row_source is None:
                    raise TrainingFailure("No training rows given and no row source configured")
                rows = self._row_source()
            _check_cancelled(cancel)

            labeled = [r for r in rows if r.is_labeled]
            if len(labeled) < self._cfg.min_training_rows:
                logger.info(
                    "Only %d labeled projects (< %d), installing label-echo fallback",
                    len(labeled), self._cfg.min_training_rows,
                )
                model: DelayModel = LabelEchoModel()
            else:
                model = self._fit(labeled)

            self._swap(TrainedModel(model, row_count=len(labeled)))
            logger.info("Delay model trained: kind=%s rows=%d", model.kind, len(labeled))
            return len(labeled)

    def ensure_trained(self) -> None:
        """Train synchronously if no model is held yet."""
        if self.is_trained:
            return
        with self._train_lock:
            if self.is_trained:
                return
            logger.info("Delay model untrained, training on first prediction")
            self.train()

    def _lgb_params(self) -> dict:
        return {
            "objective": "regression",
            "num_leaves": self._cfg.num_leaves,
            "min_data_in_leaf": self._cfg.min_data_in_leaf,
            "learning_rate": self._cfg.learning_rate,
            "seed": self._cfg.random_seed,
            "deterministic": True,
            "force_row_wise": True,
            "num_threads": 1,
            "verbose": -1,
        }

    def _fit(self, labeled: Sequence[FeatureRow]) -> LightGBMDelayModel:
        X = to_matrix(labeled)
        y = labels(labeled)
        try:
            dataset = lgb.Dataset(X, label=y, feature_name=FEATURE_NAMES, free_raw_data=False)
            booster = lgb.train(
                self._lgb_params(),
                dataset,
                num_boost_round=self._cfg.num_trees,
            )
        except Exception as exc:
            logger.exception("Delay regressor fit failed on %d rows", len(labeled))
            raise TrainingFailure(f"LightGBM fit failed: {exc}") from exc
        return LightGBMDelayModel(booster)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def predict(self, row: FeatureRow) -> float:
        self.ensure_trained()
        held = self.current()
        return held.model.predict(row)

    def save(self, path: str | Path) -> Path:
        """Write the held LightGBM booster to ``path`` (LightGBM text format)."""
        held = self.current()
        if held is None or not isinstance(held.model, LightGBMDelayModel):
            raise ValueError("Only a fitted LightGBM delay model can be saved")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        held.model.booster.save_model(str(path))
        logger.info("Delay model saved to %s", path)
        return path


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise TrainingCancelled("Delay model training cancelled")
