"""Prediction service facade: wires the pipeline to the project feed.

Flow:
    ProjectRepository
      ├─ list_labeled_projects() → extract_features → DelayRegressor.train
      ├─ list_projects()         → extract_features → ModelEvaluator
      │                                                 (cross-validation, importance)
      └─ list_projects() + feedback_averages()
                 → DelayRegressor.predict → RiskAnalyzer
                                              (high-risk list, k-means clusters)

One instance per application, created at startup and handed to request
handlers through FastAPI dependencies. It owns the only mutable state: the
regressor's held model.
"""

import logging
import threading

from config import Settings, settings
from models.responses import (
    ClusterAssignment,
    CrossValidationMetrics,
    DelayRankingRecord,
    FeatureImportance,
    HealthResponse,
    ProjectPrediction,
    RiskRecord,
)
from models.schemas.feature_row import FeatureRow
from services.pipeline.base import TrainingDisabled
from services.pipeline.delay_regressor import DelayRegressorService, HeuristicDelayModel
from services.pipeline.evaluator import ModelEvaluator
from services.pipeline.features import extract_features, features_from_values
from services.pipeline.risk_analyzer import RiskAnalyzer
from services.storage import ProjectRepository

logger = logging.getLogger(__name__)

PREDICTION_MODES = ("trained", "heuristic")


class PredictionService:
    def __init__(self, repository: ProjectRepository, config: Settings | None = None) -> None:
        self._cfg = config or settings
        if self._cfg.prediction_mode not in PREDICTION_MODES:
            raise ValueError(
                f"Unknown prediction_mode {self._cfg.prediction_mode!r}, "
                f"expected one of {PREDICTION_MODES}"
            )
        self._repo = repository
        self.regressor = DelayRegressorService(row_source=self._labeled_rows, config=self._cfg)
        self.heuristic = HeuristicDelayModel()
        self.evaluator = ModelEvaluator(self._cfg)
        self.risk = RiskAnalyzer(self._predict_row, self._cfg)

    @property
    def prediction_mode(self) -> str:
        return self._cfg.prediction_mode

    def startup(self) -> None:
        self.regressor.ensure_loaded()
        logger.info("Prediction service ready (mode=%s)", self.prediction_mode)

    # --- feature feeds ---

    def _labeled_rows(self) -> list[FeatureRow]:
        return [extract_features(p) for p in self._repo.list_labeled_projects()]

    def _all_rows(self) -> list[FeatureRow]:
        return [extract_features(p) for p in self._repo.list_projects()]

    def _predict_row(self, row: FeatureRow) -> float:
        if self.prediction_mode == "heuristic":
            return self.heuristic.predict(row)
        return self.regressor.predict(row)

    # --- exposed operations ---

    def predict_delay(
        self,
        length_m: float,
        base_price: float,
        task_count: int,
        change_request_count: int,
        interaction_count: int,
    ) -> float:
        row = features_from_values(
            length_m, base_price, task_count, change_request_count, interaction_count,
        )
        return self._predict_row(row)

    def predict_project(self, project_id: int) -> ProjectPrediction | None:
        project = self._repo.get_project(project_id)
        if project is None:
            return None
        delay = self._predict_row(extract_features(project))
        return ProjectPrediction(project_id=project_id, predicted_delay_days=round(delay, 1))

    def serving_status(self) -> HealthResponse:
        if self.prediction_mode == "heuristic":
            return HealthResponse(
                prediction_mode=self.prediction_mode,
                model_trained=True,
                model_kind=self.heuristic.kind,
            )
        held = self.regressor.current()
        return HealthResponse(
            prediction_mode=self.prediction_mode,
            model_trained=held is not None,
            model_kind=held.kind if held else "",
            training_rows=held.row_count if held else 0,
        )

    def train(self, cancel: threading.Event | None = None) -> int:
        if self.prediction_mode == "heuristic":
            raise TrainingDisabled("prediction_mode is heuristic; the fixed formula has nothing to fit")
        return self.regressor.train(cancel=cancel)

    def cross_validate(self, folds: int | None = None) -> CrossValidationMetrics:
        if folds is None:
            folds = self._cfg.default_cv_folds
        return self.evaluator.cross_validate(self._all_rows(), folds)

    def feature_importance(self) -> FeatureImportance:
        return self.evaluator.feature_importance(self._all_rows())

    def high_risk_projects(self) -> list[RiskRecord]:
        return self.risk.high_risk_projects(self._repo.list_projects(), self._repo.feedback_averages())

    def top_predicted_delays(self, limit: int = 5) -> list[DelayRankingRecord]:
        return self.risk.top_predicted_delays(
            self._repo.list_projects(), self._repo.feedback_averages(), limit,
        )

    def run_clustering(self, k: int | None = None) -> list[ClusterAssignment]:
        if k is None:
            k = self._cfg.default_cluster_count
        return self.risk.run_clustering(self._repo.list_projects(), self._repo.feedback_averages(), k)
