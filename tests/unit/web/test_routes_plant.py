"""Tests for plantmap.web.routes.plant and health - Layout routes."""

from datetime import datetime
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import OperationalError

from plantmap.db.connection import get_db
from plantmap.registry import StoredLayout
from plantmap.web.app import app

MODULE = "plantmap.web.routes.plant"


class TestLayout:
    @patch(f"{MODULE}.load_registry", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_trackers_with_cabinets(
        self, mock_get_session, mock_load_registry, client, mock_db_session, small_registry
    ):
        mock_get_session.return_value = mock_db_session
        mock_load_registry.return_value = small_registry

        response = client.get("/api/plant/layout")

        assert response.status_code == 200
        data = response.json()
        assert data["site"] == "Witkop Solar Farm"
        assert data["site_office_id"] == "SITE_OFFICE"
        trackers = {t["id"]: t for t in data["trackers"]}
        assert len(trackers) == 5
        assert trackers["M03"]["cabinet"] == "CT01"
        assert trackers["SITE_OFFICE"]["is_site_office"] is True


class TestStructure:
    @patch(f"{MODULE}.fetch_latest_layout", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_get_latest(self, mock_get_session, mock_fetch, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_fetch.return_value = StoredLayout(
            structure=[{"id": "M01", "row": 1, "col": 1}],
            version=7,
            created_at=datetime(2025, 5, 1, 9, 30),
            created_by="admin-1",
        )

        response = client.get("/api/plant/structure")

        assert response.status_code == 200
        assert response.json()["version"] == 7
        assert response.json()["structure"] == [{"id": "M01", "row": 1, "col": 1}]

    def test_save_requires_admin(self, client, field_headers):
        response = client.post(
            "/api/plant/structure",
            json={"structure": [{"id": "M01", "row": 1, "col": 1}]},
            headers=field_headers,
        )

        assert response.status_code == 403

    def test_save_rejects_empty_structure(self, client, admin_headers):
        response = client.post("/api/plant/structure", json={"structure": []}, headers=admin_headers)

        assert response.status_code == 422

    @patch(f"{MODULE}.log_action", new_callable=AsyncMock)
    @patch(f"{MODULE}.save_layout", new_callable=AsyncMock)
    @patch(f"{MODULE}.get_session")
    def test_save_new_version(
        self, mock_get_session, mock_save, mock_log_action, client, admin_headers, mock_db_session
    ):
        mock_get_session.return_value = mock_db_session
        mock_save.return_value = 3
        structure = [
            {"id": "M01", "row": 1, "col": 1},
            {"id": "M02", "row": 1, "col": 2},
            {"id": "ROAD_1", "row": 0, "col": 0},
        ]

        response = client.post("/api/plant/structure", json={"structure": structure}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"version": 3, "tracker_count": 2}
        assert mock_save.call_args.kwargs == {"created_by": "admin-1"}
        assert mock_log_action.call_args.args[1] == "PLANT_LAYOUT_SAVE"


class TestHealth:
    @patch("plantmap.web.routes.health.fetch_latest_layout", new_callable=AsyncMock)
    def test_database_connected(self, mock_fetch_layout, client):
        session = AsyncMock()
        mock_fetch_layout.return_value = StoredLayout(structure=[{"id": "M01"}], version=2)

        async def _override():
            yield session

        app.dependency_overrides[get_db] = _override
        try:
            response = client.get("/health")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "database": "connected",
            "layout_version": 2,
            "layout_loaded": True,
        }
        session.execute.assert_awaited_once()

    def test_database_disconnected(self, client):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

        async def _override():
            yield session

        app.dependency_overrides[get_db] = _override
        try:
            response = client.get("/health")
        finally:
            app.dependency_overrides.clear()

        assert response.json()["status"] == "error"
        assert response.json()["database"] == "disconnected"
