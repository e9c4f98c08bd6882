"""Risk & Cluster Analyzer for the project risk dashboard.

Combines delay predictions with change-request counts and average customer
feedback. Projects without feedback get ``default_feedback_score`` (10 by
default), which sits outside the 0-10 feedback scale on purpose to mark
"no data" while still sorting and clustering numerically.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import numpy as np
from sklearn.cluster import KMeans

from config import Settings, settings
from models.responses import ClusterAssignment, DelayRankingRecord, RiskRecord
from models.schemas.feature_row import FeatureRow
from models.schemas.project_record import ProjectRecord
from services.pipeline.features import extract_features

logger = logging.getLogger(__name__)

DelayPredictor = Callable[[FeatureRow], float]


@dataclass
class _ScoredProject:
    project: ProjectRecord
    predicted_delay: float
    feedback_score: float


class RiskAnalyzer:
    def __init__(self, predict: DelayPredictor, config: Settings | None = None) -> None:
        self._predict = predict
        self._cfg = config or settings

    def _score(
        self,
        projects: Sequence[ProjectRecord],
        feedback: Mapping[int, float],
    ) -> list[_ScoredProject]:
        default = self._cfg.default_feedback_score
        return [
            _ScoredProject(
                project=p,
                predicted_delay=self._predict(extract_features(p)),
                feedback_score=float(feedback.get(p.project_id, default)),
            )
            for p in projects
        ]

    def high_risk_projects(
        self,
        projects: Sequence[ProjectRecord],
        feedback: Mapping[int, float],
    ) -> list[RiskRecord]:
        """Projects above both the delay and change-request thresholds.

        Ordered by predicted delay, then change-request count, both descending.
        """
        delay_threshold = self._cfg.high_risk_delay_days
        cr_threshold = self._cfg.high_risk_change_requests

        records = [
            RiskRecord(
                project_id=s.project.project_id,
                project_name=s.project.name,
                customer_name=s.project.customer_name,
                predicted_delay=s.predicted_delay,
                change_request_count=s.project.change_request_count,
                feedback_score=s.feedback_score,
            )
            for s in self._score(projects, feedback)
            if s.predicted_delay > delay_threshold
            and s.project.change_request_count > cr_threshold
        ]
        records.sort(key=lambda r: (r.predicted_delay, r.change_request_count), reverse=True)
        logger.info("High-risk scan: %d of %d projects flagged", len(records), len(projects))
        return records

    def top_predicted_delays(
        self,
        projects: Sequence[ProjectRecord],
        feedback: Mapping[int, float],
        limit: int = 5,
    ) -> list[DelayRankingRecord]:
        """Longest predicted delays among projects with a yacht model linked, no thresholds.

        Ties on predicted delay go to the project with more change requests.
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        linked = [p for p in projects if p.length_m is not None and p.base_price is not None]
        records = [
            DelayRankingRecord(
                project_id=s.project.project_id,
                project_name=s.project.name,
                customer_name=s.project.customer_name,
                predicted_delay=s.predicted_delay,
                change_request_count=s.project.change_request_count,
                task_count=s.project.task_count,
                length_m=s.project.length_m,
            )
            for s in self._score(linked, feedback)
        ]
        records.sort(key=lambda r: (r.predicted_delay, r.change_request_count), reverse=True)
        return records[:limit]

    def run_clustering(
        self,
        projects: Sequence[ProjectRecord],
        feedback: Mapping[int, float],
        k: int = 3,
    ) -> list[ClusterAssignment]:
        """K-means over (predicted delay, change requests, feedback), fit fresh each call.

        Labels are 0-based and only consistent within one call.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        scored = self._score(projects, feedback)
        if not scored:
            return []

        points = np.array(
            [[s.predicted_delay, s.project.change_request_count, s.feedback_score] for s in scored],
            dtype=np.float64,
        )
        n_clusters = min(k, len(points))
        if n_clusters < k:
            logger.info("Only %d projects for k=%d, clustering into %d groups", len(points), k, n_clusters)

        kmeans = KMeans(n_clusters=n_clusters, n_init=10, random_state=self._cfg.random_seed)
        cluster_labels = kmeans.fit_predict(points)

        return [
            ClusterAssignment(
                project_id=s.project.project_id,
                project_name=s.project.name,
                cluster_label=int(label),
                predicted_delay=s.predicted_delay,
                change_request_count=s.project.change_request_count,
                feedback_score=s.feedback_score,
            )
            for s, label in zip(scored, cluster_labels)
        ]
