"""Pydantic contracts shared by the prediction pipeline."""

from models.schemas.project_record import ProjectRecord
from models.schemas.feature_row import FeatureRow

__all__ = [
    "ProjectRecord",
    "FeatureRow",
]
