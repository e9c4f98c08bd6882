"""Read-only project feed for the prediction pipeline.

Queries the CRM database with SQLAlchemy Core. Table and column names follow
the CRM's relational schema (projects, customers, yacht_models, crm_tasks,
change_requests, interactions, customer_feedback); this module never writes.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from models.schemas.project_record import ProjectRecord

logger = logging.getLogger(__name__)

_PROJECT_SELECT = """
    SELECT
        p.project_id,
        p.name,
        COALESCE(c.name, '')                                             AS customer_name,
        p.planned_start,
        p.planned_end,
        p.actual_start,
        p.actual_end,
        m.length                                                         AS length_m,
        m.base_price,
        (SELECT COUNT(*) FROM crm_tasks t WHERE t.project_id = p.project_id)
                                                                         AS task_count,
        (SELECT COUNT(*) FROM change_requests cr WHERE cr.project_id = p.project_id)
                                                                         AS change_request_count,
        (SELECT COUNT(*) FROM interactions i WHERE i.project_id = p.project_id)
                                                                         AS interaction_count
    FROM projects p
    LEFT JOIN customers c     ON c.customer_id = p.customer_id
    LEFT JOIN yacht_models m  ON m.model_id = p.yacht_model_id
"""

_FEEDBACK_AVG = """
    SELECT project_id, AVG(score) AS avg_score
    FROM customer_feedback
    WHERE project_id IS NOT NULL
    GROUP BY project_id
"""


class ProjectRepository(Protocol):
    def list_projects(self) -> list[ProjectRecord]: ...

    def list_labeled_projects(self) -> list[ProjectRecord]: ...

    def get_project(self, project_id: int) -> ProjectRecord | None: ...

    def feedback_averages(self) -> dict[int, float]: ...


class SqlProjectRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _fetch(self, where: str = "", params: dict | None = None) -> list[ProjectRecord]:
        sql = _PROJECT_SELECT + where + " ORDER BY p.project_id"
        with self._engine.connect() as conn:
            result = conn.execute(text(sql), params or {})
            return [ProjectRecord.model_validate(dict(row)) for row in result.mappings()]

    def list_projects(self) -> list[ProjectRecord]:
        return self._fetch()

    def list_labeled_projects(self) -> list[ProjectRecord]:
        return self._fetch(" WHERE p.actual_end IS NOT NULL")

    def get_project(self, project_id: int) -> ProjectRecord | None:
        rows = self._fetch(" WHERE p.project_id = :project_id", {"project_id": project_id})
        return rows[0] if rows else None

    def feedback_averages(self) -> dict[int, float]:
        with self._engine.connect() as conn:
            result = conn.execute(text(_FEEDBACK_AVG))
            return {int(r.project_id): float(r.avg_score) for r in result}


class InMemoryProjectRepository:
    """Repository over plain Python data (tests, notebooks, embedding)."""

    def __init__(
        self,
        projects: Sequence[ProjectRecord] = (),
        feedback_scores: Mapping[int, Sequence[int]] | None = None,
    ) -> None:
        self._projects = {p.project_id: p for p in projects}
        self._feedback = {k: list(v) for k, v in (feedback_scores or {}).items()}

    def list_projects(self) -> list[ProjectRecord]:
        return [self._projects[k] for k in sorted(self._projects)]

    def list_labeled_projects(self) -> list[ProjectRecord]:
        return [p for p in self.list_projects() if p.actual_end is not None]

    def get_project(self, project_id: int) -> ProjectRecord | None:
        return self._projects.get(project_id)

    def feedback_averages(self) -> dict[int, float]:
        return {
            project_id: sum(scores) / len(scores)
            for project_id, scores in self._feedback.items()
            if scores
        }


def create_repository(database_url: str) -> SqlProjectRepository:
    logger.info("Connecting project feed to %s", database_url.split("@")[-1])
    return SqlProjectRepository(create_engine(database_url, pool_pre_ping=True))
