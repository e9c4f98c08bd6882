"""Tests for high-risk ranking and k-means clustering."""

import pytest

from config import Settings
from conftest import make_project
from services.pipeline.risk_analyzer import RiskAnalyzer


def _delay_from_tasks(row):
    """Stub predictor: the project's task count stands in for its predicted delay."""
    return float(row.task_count)


def _project(project_id, delay, crs, **kwargs):
    return make_project(project_id, task_count=delay, change_request_count=crs, **kwargs)


class TestHighRiskProjects:
    def setup_method(self):
        self.analyzer = RiskAnalyzer(_delay_from_tasks, Settings())

    def test_delay_threshold_not_met_is_excluded(self):
        result = self.analyzer.high_risk_projects([_project(1, 10, 8), _project(2, 20, 6)], {})
        assert [r.project_id for r in result] == [2]

    def test_thresholds_are_strict(self):
        result = self.analyzer.high_risk_projects([_project(1, 15, 9), _project(2, 30, 5)], {})
        assert result == []

    def test_sorted_by_delay_descending(self):
        projects = [_project(1, 18, 6), _project(2, 40, 6), _project(3, 25, 7)]
        result = self.analyzer.high_risk_projects(projects, {})
        assert [r.project_id for r in result] == [2, 3, 1]

    def test_change_requests_break_ties(self):
        analyzer = RiskAnalyzer(_delay_from_tasks, Settings(high_risk_change_requests=3))
        result = analyzer.high_risk_projects([_project(1, 20, 4), _project(2, 20, 9)], {})
        assert [(r.project_id, r.change_request_count) for r in result] == [(2, 9), (1, 4)]

    def test_record_fields(self):
        project = _project(7, 22, 6, name="Custom 88", customer_name="Blue Water Ltd")
        (record,) = self.analyzer.high_risk_projects([project], {7: 6.5})
        assert record.project_name == "Custom 88"
        assert record.customer_name == "Blue Water Ltd"
        assert record.predicted_delay == 22.0
        assert record.change_request_count == 6
        assert record.feedback_score == 6.5

    def test_missing_feedback_uses_default(self):
        (record,) = self.analyzer.high_risk_projects([_project(1, 30, 8)], {})
        assert record.feedback_score == 10.0


class TestTopPredictedDelays:
    def setup_method(self):
        self.analyzer = RiskAnalyzer(_delay_from_tasks, Settings())

    def test_no_thresholds_applied(self):
        result = self.analyzer.top_predicted_delays([_project(1, 3, 0), _project(2, 1, 1)], {})
        assert [r.project_id for r in result] == [1, 2]

    def test_ordered_by_delay_then_change_requests(self):
        projects = [_project(1, 10, 1), _project(2, 30, 0), _project(3, 10, 4), _project(4, 0, 9)]
        result = self.analyzer.top_predicted_delays(projects, {})
        assert [r.project_id for r in result] == [2, 3, 1, 4]

    def test_projects_without_yacht_model_skipped(self):
        projects = [
            _project(1, 50, 2, length_m=None),
            _project(2, 40, 2, base_price=None),
            _project(3, 5, 2),
        ]
        result = self.analyzer.top_predicted_delays(projects, {})
        assert [r.project_id for r in result] == [3]

    def test_limit(self):
        projects = [_project(i, i, 0) for i in range(1, 9)]
        result = self.analyzer.top_predicted_delays(projects, {})
        assert [r.project_id for r in result] == [8, 7, 6, 5, 4]
        assert len(self.analyzer.top_predicted_delays(projects, {}, limit=2)) == 2

    def test_record_fields(self):
        project = _project(7, 22, 6, name="Custom 88", customer_name="Blue Water Ltd", length_m=27.5)
        (record,) = self.analyzer.top_predicted_delays([project], {})
        assert record.project_name == "Custom 88"
        assert record.customer_name == "Blue Water Ltd"
        assert record.predicted_delay == 22.0
        assert (record.change_request_count, record.task_count) == (6, 22)
        assert record.length_m == 27.5

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            self.analyzer.top_predicted_delays([_project(1, 3, 0)], {}, limit=0)


class TestClustering:
    def setup_method(self):
        self.analyzer = RiskAnalyzer(_delay_from_tasks, Settings())
        # Three well separated groups in (delay, change requests, feedback)
        self.projects = (
            [_project(i, 2 + i % 2, 0) for i in range(1, 6)]
            + [_project(i, 40 + i % 2, 6) for i in range(6, 11)]
            + [_project(i, 90 + i % 2, 12) for i in range(11, 16)]
        )
        self.feedback = {i: 9.0 for i in range(1, 6)} | {i: 5.0 for i in range(6, 16)}

    @staticmethod
    def _groups(assignments):
        by_label = {}
        for a in assignments:
            by_label.setdefault(a.cluster_label, set()).add(a.project_id)
        return sorted(sorted(g) for g in by_label.values())

    def test_separated_groups_recovered(self):
        result = self.analyzer.run_clustering(self.projects, self.feedback, k=3)
        assert self._groups(result) == [[1, 2, 3, 4, 5], [6, 7, 8, 9, 10], [11, 12, 13, 14, 15]]

    def test_repeated_runs_same_co_membership(self):
        first = self.analyzer.run_clustering(self.projects, self.feedback, k=3)
        second = self.analyzer.run_clustering(self.projects, self.feedback, k=3)
        assert self._groups(first) == self._groups(second)

    def test_labels_are_small_zero_based(self):
        result = self.analyzer.run_clustering(self.projects, self.feedback, k=3)
        assert {a.cluster_label for a in result} == {0, 1, 2}

    def test_points_carry_feature_values(self):
        result = self.analyzer.run_clustering(self.projects, self.feedback, k=3)
        by_id = {a.project_id: a for a in result}
        assert by_id[11].predicted_delay == 91.0
        assert by_id[11].change_request_count == 12
        assert by_id[11].feedback_score == 5.0

    def test_no_projects(self):
        assert self.analyzer.run_clustering([], {}, k=3) == []

    def test_fewer_projects_than_clusters(self):
        result = self.analyzer.run_clustering(self.projects[:2], self.feedback, k=3)
        assert len(result) == 2
        assert {a.cluster_label for a in result} <= {0, 1}

    def test_invalid_k(self):
        with pytest.raises(ValueError):
            self.analyzer.run_clustering(self.projects, self.feedback, k=0)
