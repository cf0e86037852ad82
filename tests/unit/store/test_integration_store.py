"""Tests for grindproof/store/integrations.py"""

import pytest

from grindproof import GITHUB_SERVICE, GOOGLE_CALENDAR_SERVICE
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import integrations


class TestIntegrationStore:
    def test_create_is_an_upsert(self, conn, user_id):
        first = integrations.create_integration(conn, user_id, GITHUB_SERVICE, {"accessToken": "old"})
        second = integrations.create_integration(conn, user_id, GITHUB_SERVICE, {"accessToken": "new"})

        assert second["id"] == first["id"]
        assert second["credentials"] == {"accessToken": "new"}
        assert len(integrations.list_integrations(conn, user_id)) == 1

    def test_get_connected_ignores_disconnected(self, conn, user_id):
        integrations.create_integration(
            conn, user_id, GOOGLE_CALENDAR_SERVICE, {"accessToken": "a"}, status="disconnected"
        )

        assert integrations.get_by_service(conn, user_id, GOOGLE_CALENDAR_SERVICE) is not None
        assert integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE) is None

    def test_invalid_status(self, conn, user_id):
        with pytest.raises(ValidationError, match="Invalid status"):
            integrations.create_integration(conn, user_id, GITHUB_SERVICE, {}, status="pending")

    def test_update_and_save_credentials(self, conn, user_id):
        created = integrations.create_integration(
            conn, user_id, GOOGLE_CALENDAR_SERVICE, {"accessToken": "a", "refreshToken": "r"}
        )

        updated = integrations.update_integration(conn, user_id, created["id"], {"status": "error"})
        assert updated["status"] == "error"

        integrations.save_credentials(conn, user_id, GOOGLE_CALENDAR_SERVICE, {"accessToken": "b"})
        assert integrations.get_by_service(conn, user_id, GOOGLE_CALENDAR_SERVICE)["credentials"] == {
            "accessToken": "b"
        }

    def test_other_user_cannot_modify(self, conn, user_id, other_user_id):
        created = integrations.create_integration(conn, user_id, GITHUB_SERVICE, {"accessToken": "a"})

        with pytest.raises(NotFoundError):
            integrations.update_integration(conn, other_user_id, created["id"], {"status": "error"})
        with pytest.raises(NotFoundError):
            integrations.delete_integration(conn, other_user_id, created["id"])
        assert integrations.get_by_service(conn, other_user_id, GITHUB_SERVICE) is None
