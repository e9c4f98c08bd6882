"""Feature extraction: ProjectRecord -> FeatureRow.

The same extraction and column order are used for training, evaluation,
importance scoring and live scoring.
"""

from collections.abc import Callable, Sequence

import numpy as np

from models.schemas.feature_row import FeatureRow
from models.schemas.project_record import ProjectRecord

CUSTOM_MARKER = "custom"
SUMMER_MONTHS = range(6, 10)  # June..September inclusive

FEATURES: tuple[tuple[str, Callable[[FeatureRow], float]], ...] = (
    ("length_m", lambda r: r.length_m),
    ("base_price", lambda r: r.base_price),
    ("task_count", lambda r: float(r.task_count)),
    ("change_request_count", lambda r: float(r.change_request_count)),
    ("interaction_count", lambda r: float(r.interaction_count)),
    ("is_custom", lambda r: 1.0 if r.is_custom else 0.0),
    ("is_summer_start", lambda r: 1.0 if r.is_summer_start else 0.0),
)

FEATURE_NAMES: list[str] = [name for name, _ in FEATURES]


def extract_features(project: ProjectRecord) -> FeatureRow:
    """Build the feature row for one project.

    A project without a linked yacht model scores with zero length and price.
    """
    label = None
    if project.actual_end is not None:
        label = float((project.actual_end - project.planned_end).days)

    return FeatureRow(
        length_m=float(project.length_m or 0.0),
        base_price=float(project.base_price or 0.0),
        task_count=project.task_count,
        change_request_count=project.change_request_count,
        interaction_count=project.interaction_count,
        is_custom=CUSTOM_MARKER in project.name.lower(),
        is_summer_start=project.planned_start.month in SUMMER_MONTHS,
        label_delay_days=label,
    )


def features_from_values(
    length_m: float,
    base_price: float,
    task_count: int,
    change_request_count: int,
    interaction_count: int,
) -> FeatureRow:
    """Feature row for ad-hoc scoring where only the raw aggregates are known."""
    return FeatureRow(
        length_m=float(length_m),
        base_price=float(base_price),
        task_count=task_count,
        change_request_count=change_request_count,
        interaction_count=interaction_count,
    )


def to_vector(row: FeatureRow) -> list[float]:
    return [accessor(row) for _, accessor in FEATURES]


def to_matrix(rows: Sequence[FeatureRow]) -> np.ndarray:
    """Stack rows into an (n, n_features) float64 matrix."""
    if not rows:
        return np.empty((0, len(FEATURES)), dtype=np.float64)
    return np.array([to_vector(r) for r in rows], dtype=np.float64)


def labels(rows: Sequence[FeatureRow], default: float | None = None) -> np.ndarray:
    """Label vector; unlabeled rows take ``default`` (must be set if any are unlabeled)."""
    values = []
    for r in rows:
        if r.label_delay_days is None:
            if default is None:
                raise ValueError("Unlabeled row in label vector and no default given")
            values.append(default)
        else:
            values.append(r.label_delay_days)
    return np.array(values, dtype=np.float64)
