"""Storage feed contract: one project with its related-entity counts."""

from datetime import date, datetime

from pydantic import BaseModel, NonNegativeInt, field_validator


class ProjectRecord(BaseModel):
    """Read-only aggregate of a project as pulled from the CRM database.

    ``length_m`` / ``base_price`` are None when the project has no yacht
    model linked.
    """
    project_id: int
    name: str = ""
    customer_name: str = ""

    planned_start: date
    planned_end: date
    actual_start: date | None = None
    actual_end: date | None = None

    length_m: float | None = None
    base_price: float | None = None

    task_count: NonNegativeInt = 0
    change_request_count: NonNegativeInt = 0
    interaction_count: NonNegativeInt = 0

    @field_validator("planned_start", "planned_end", "actual_start", "actual_end", mode="before")
    @classmethod
    def _calendar_date(cls, value):
        # Delays are counted in whole calendar days, so any time part is dropped.
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value
