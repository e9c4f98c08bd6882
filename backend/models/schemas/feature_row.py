"""Model input: fixed-width numeric summary of one project."""

from pydantic import BaseModel, NonNegativeInt


class FeatureRow(BaseModel):
    """Feature vector for the delay regressor.

    ``label_delay_days`` is the actual delay (actual end minus planned end,
    in days, negative for early deliveries). It is None for projects that
    have not been delivered yet.
    """
    length_m: float = 0.0
    base_price: float = 0.0
    task_count: NonNegativeInt = 0
    change_request_count: NonNegativeInt = 0
    interaction_count: NonNegativeInt = 0
    is_custom: bool = False
    is_summer_start: bool = False

    label_delay_days: float | None = None

    @property
    def is_labeled(self) -> bool:
        return self.label_delay_days is not None
