"""Tests for plantmap.web.routes.cycles - Cycle info, reset and history routes."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from plantmap.exceptions import PreconditionFailed
from plantmap.models import CycleState, TaskType, TrackerState

MODULE = "plantmap.web.routes.cycles"


@pytest.fixture
def cycle_info() -> dict:
    return {
        "task_type": "panel_wash",
        "cycle_number": 3,
        "is_complete": False,
        "task_started": True,
        "started_at": "2025-06-01T08:00:00",
        "completed_at": None,
        "progress": 12.5,
        "done_count": 0,
        "halfway_count": 1,
        "not_done_count": 3,
        "total_count": 4,
    }


class TestGetCycle:
    @patch(f"{MODULE}.get_cycle_info", new_callable=AsyncMock)
    @patch(f"{MODULE}.load_registry", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_cycle_info(
        self, mock_get_session, mock_load_registry, mock_cycle_info, client, mock_db_session, cycle_info
    ):
        mock_get_session.return_value = mock_db_session
        mock_cycle_info.return_value = cycle_info

        response = client.get("/api/plant/cycles/panel_wash")

        assert response.status_code == 200
        assert response.json() == cycle_info
        assert mock_cycle_info.call_args.args[2] == TaskType.PANEL_WASH

    def test_unknown_task_type(self, client):
        response = client.get("/api/plant/cycles/snow_clearing")

        assert response.status_code == 422

    @patch(f"{MODULE}.CycleStateStore")
    @patch(f"{MODULE}.load_registry", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_state(self, mock_get_session, mock_load_registry, mock_store_cls, client, mock_db_session, small_registry):
        mock_get_session.return_value = mock_db_session
        mock_load_registry.return_value = small_registry
        mock_store_cls.return_value.get_state = AsyncMock(
            return_value=CycleState(
                task_type=TaskType.GRASS_CUTTING,
                cycle_number=1,
                tracker_states={
                    "M01": TrackerState.DONE,
                    "M02": TrackerState.HALFWAY,
                    "M03": TrackerState.NOT_DONE,
                    "M04": TrackerState.NOT_DONE,
                },
            )
        )

        response = client.get("/api/plant/cycles/grass_cutting/state")

        assert response.status_code == 200
        data = response.json()
        assert data["tracker_states"]["M02"] == "halfway"
        assert data["progress"]["percent_complete"] == 37.5
        assert data["progress"]["total_trackers"] == 4


class TestResetCycle:
    def test_requires_identity(self, client):
        response = client.post("/api/plant/cycles/grass_cutting/reset")

        assert response.status_code == 401

    def test_requires_admin(self, client, field_headers):
        response = client.post("/api/plant/cycles/grass_cutting/reset", headers=field_headers)

        assert response.status_code == 403

    @patch(f"{MODULE}.CycleStateStore")
    @patch(f"{MODULE}.load_registry", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_incomplete_cycle(
        self, mock_get_session, mock_load_registry, mock_store_cls, client, admin_headers, mock_db_session
    ):
        mock_get_session.return_value = mock_db_session
        mock_store_cls.return_value.reset_cycle = AsyncMock(
            side_effect=PreconditionFailed("Grass Cutting cycle 1 is not complete (50.0%)")
        )

        response = client.post("/api/plant/cycles/grass_cutting/reset", headers=admin_headers)

        assert response.status_code == 409
        assert response.json() == {
            "error": "precondition_failed",
            "detail": "Grass Cutting cycle 1 is not complete (50.0%)",
        }

    @patch(f"{MODULE}.get_cycle_info", new_callable=AsyncMock)
    @patch(f"{MODULE}.log_action", new_callable=AsyncMock)
    @patch(f"{MODULE}.CycleStateStore")
    @patch(f"{MODULE}.load_registry", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_success(
        self,
        mock_get_session,
        mock_load_registry,
        mock_store_cls,
        mock_log_action,
        mock_cycle_info,
        client,
        admin_headers,
        mock_db_session,
        cycle_info,
    ):
        mock_get_session.return_value = mock_db_session
        store = MagicMock()
        store.reset_cycle = AsyncMock(
            return_value=CycleState(task_type=TaskType.PANEL_WASH, cycle_number=4)
        )
        mock_store_cls.return_value = store
        mock_cycle_info.return_value = {**cycle_info, "cycle_number": 4, "progress": 0.0}

        response = client.post("/api/plant/cycles/panel_wash/reset", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["cycle_number"] == 4
        store.reset_cycle.assert_awaited_once_with(TaskType.PANEL_WASH, reset_by="admin-1")
        assert mock_log_action.call_args.args[1] == "CYCLE_RESET"


class TestHistoryAndStats:
    @patch(f"{MODULE}.fetch_cycle_history", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_history(self, mock_get_session, mock_history, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_history.return_value = {"cycles": [], "summary": {"total_cycles": 0, "by_month": {}}}

        response = client.get("/api/plant/cycles/grass_cutting/history?year=2025&month=3")

        assert response.status_code == 200
        assert response.json()["task_type"] == "grass_cutting"
        assert mock_history.call_args.kwargs == {"year": 2025, "month": 3}

    def test_history_rejects_bad_month(self, client):
        response = client.get("/api/plant/cycles/grass_cutting/history?month=13")

        assert response.status_code == 422

    @patch(f"{MODULE}.compute_cycle_stats", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_stats_for_year(self, mock_get_session, mock_stats, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_stats.return_value = {"year": 2024, "total_cycles": 2}

        response = client.get("/api/plant/cycles/panel_wash/stats?year=2024")

        assert response.status_code == 200
        assert response.json()["total_cycles"] == 2
        assert mock_stats.call_args.args[1:] == (TaskType.PANEL_WASH, 2024)
