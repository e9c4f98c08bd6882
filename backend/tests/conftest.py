"""Shared test configuration, pytest markers and project fixtures."""

from datetime import date, timedelta

import numpy as np
import pytest

from config import Settings
from models.schemas.project_record import ProjectRecord
from services.storage import InMemoryProjectRepository


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: trains real LightGBM / k-means models (slower)"
    )


def make_project(
    project_id: int,
    *,
    name: str | None = None,
    customer_name: str = "Harbour Holdings",
    planned_start: date = date(2024, 1, 15),
    duration_days: int = 300,
    delay_days: int | None = None,
    length_m: float | None = 40.0,
    base_price: float | None = 900_000.0,
    task_count: int = 20,
    change_request_count: int = 2,
    interaction_count: int = 5,
) -> ProjectRecord:
    """Project record; ``delay_days`` set means the yacht has been delivered."""
    planned_end = planned_start + timedelta(days=duration_days)
    actual_end = planned_end + timedelta(days=delay_days) if delay_days is not None else None
    return ProjectRecord(
        project_id=project_id,
        name=name or f"Hull {project_id}",
        customer_name=customer_name,
        planned_start=planned_start,
        planned_end=planned_end,
        actual_start=planned_start if delay_days is not None else None,
        actual_end=actual_end,
        length_m=length_m,
        base_price=base_price,
        task_count=task_count,
        change_request_count=change_request_count,
        interaction_count=interaction_count,
    )


def synthetic_projects(n: int = 40, *, seed: int = 7, delivered_ratio: float = 1.0) -> list[ProjectRecord]:
    """Projects whose delay grows with change requests and length."""
    rng = np.random.default_rng(seed)
    projects = []
    for i in range(1, n + 1):
        length = float(rng.integers(20, 80))
        crs = int(rng.integers(0, 12))
        interactions = int(rng.integers(0, 30))
        tasks = int(rng.integers(10, 80))
        delay = int(round(3.0 * crs + 0.2 * length - 0.3 * interactions + rng.normal(0, 2)))
        delivered = rng.random() < delivered_ratio
        projects.append(make_project(
            i,
            name=f"Custom Hull {i}" if i % 4 == 0 else f"Hull {i}",
            planned_start=date(2023, int(rng.integers(1, 13)), 1),
            delay_days=delay if delivered else None,
            length_m=length,
            base_price=length * 25_000.0,
            task_count=tasks,
            change_request_count=crs,
            interaction_count=interactions,
        ))
    return projects


@pytest.fixture
def test_settings():
    return Settings(database_url="sqlite://", delay_model_file="", prediction_mode="trained")


@pytest.fixture
def projects():
    return synthetic_projects()


@pytest.fixture
def repository(projects):
    return InMemoryProjectRepository(projects, feedback_scores={1: [8, 6], 2: [3]})
