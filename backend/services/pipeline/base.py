"""Abstract base classes and errors for the delay prediction pipeline."""

from abc import ABC, abstractmethod
import logging

from models.schemas.feature_row import FeatureRow

logger = logging.getLogger(__name__)


class TrainingFailure(Exception):
    """Model fitting raised an unexpected error; the previous model stays held."""


class TrainingCancelled(Exception):
    """Training was cancelled before fitting started."""


class TrainingDisabled(Exception):
    """Training was requested while predictions are served by the heuristic."""


class DelayModel(ABC):
    """A fitted, immutable artifact mapping a FeatureRow to a delay in days."""

    kind: str = ""

    @abstractmethod
    def predict(self, row: FeatureRow) -> float:
        """Predicted delay in days. Negative values mean early delivery."""


class BaseModelService(ABC):
    """Base class for pipeline model services.

    Subclasses must implement:
        - model_name: identifier used in logs and health output
        - load(): load persisted artifacts, if any
        - predict(row): run inference for one FeatureRow
    """

    model_name: str = ""
    _loaded: bool = False

    @abstractmethod
    def load(self) -> None:
        """Load persisted artifacts. Called once at startup."""

    @abstractmethod
    def predict(self, row: FeatureRow) -> float:
        """Run inference for a single feature row."""

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def ensure_loaded(self) -> None:
        """Load artifacts if not already loaded."""
        if not self._loaded:
            logger.info("Loading model: %s", self.model_name)
            self.load()
            self._loaded = True
            logger.info("Model loaded: %s", self.model_name)
