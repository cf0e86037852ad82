"""Tests for grindproof/security/session.py

Sessions gate every API route. Key behavior:
- Only the token hash is stored
- Expired sessions are deactivated on first validation
- Revocation works per token and per user
"""

from datetime import timedelta

import pytest

from grindproof.security import session


# ─────────────────────────────────────────────────────────────────────────────
# Master key
# ─────────────────────────────────────────────────────────────────────────────


class TestCheckMasterKey:
    def test_matching_key(self, monkeypatch):
        monkeypatch.setenv("GRINDPROOF_MASTER_KEY", "open-sesame")

        assert session.check_master_key("open-sesame") is True
        assert session.check_master_key("open-sesam") is False
        assert session.check_master_key(None) is False

    def test_unset_key_rejects_everything(self, monkeypatch):
        monkeypatch.delenv("GRINDPROOF_MASTER_KEY", raising=False)

        assert session.check_master_key("") is False
        assert session.check_master_key("anything") is False


# ─────────────────────────────────────────────────────────────────────────────
# Create / validate
# ─────────────────────────────────────────────────────────────────────────────


class TestCreateSession:
    def test_raw_token_is_not_stored(self, conn, user_id):
        """The sessions table holds the SHA-256 of the token only."""
        created = session.create_session(conn, user_id)

        row = conn.execute("SELECT token_hash FROM sessions WHERE id = ?", (created["session_id"],)).fetchone()
        assert row["token_hash"] == session.hash_token(created["token"])
        assert row["token_hash"] != created["token"]

    def test_ttl_is_capped_at_a_week(self, conn, user_id, now):
        created = session.create_session(conn, user_id, ttl_hours=1000, now=now)

        assert created["expires_at"] == "2026-10-21T15:00:00.000+00:00"

    def test_default_ttl(self, conn, user_id, now):
        created = session.create_session(conn, user_id, now=now)

        assert created["expires_at"] == "2026-10-15T15:00:00.000+00:00"


class TestValidateSession:
    def test_valid_session(self, conn, user_id, now):
        created = session.create_session(conn, user_id, now=now)

        result = session.validate_session(conn, created["token"], now=now + timedelta(hours=1))

        assert result["valid"] is True
        assert result["user_id"] == user_id
        activity = conn.execute("SELECT last_activity FROM sessions").fetchone()["last_activity"]
        assert activity == "2026-10-14T16:00:00.000+00:00"

    def test_unknown_token(self, conn):
        assert session.validate_session(conn, "nope") == {"valid": False, "reason": "token_not_found"}

    def test_expired_session_is_deactivated(self, conn, user_id, now):
        created = session.create_session(conn, user_id, ttl_hours=1, now=now)

        result = session.validate_session(conn, created["token"], now=now + timedelta(hours=2))

        assert result == {"valid": False, "reason": "session_expired"}
        assert session.validate_session(conn, created["token"], now=now)["reason"] == "session_revoked"

    def test_check_without_touching_activity(self, conn, user_id, now):
        created = session.create_session(conn, user_id, now=now)

        session.validate_session(conn, created["token"], update_activity=False, now=now + timedelta(hours=3))

        activity = conn.execute("SELECT last_activity FROM sessions").fetchone()["last_activity"]
        assert activity == "2026-10-14T15:00:00.000+00:00"


# ─────────────────────────────────────────────────────────────────────────────
# Revocation and cleanup
# ─────────────────────────────────────────────────────────────────────────────


class TestRevocation:
    def test_revoke_one(self, conn, user_id):
        created = session.create_session(conn, user_id)

        assert session.revoke_session(conn, created["token"])["success"] is True
        assert session.validate_session(conn, created["token"])["reason"] == "session_revoked"
        assert session.revoke_session(conn, "missing") == {"success": False, "error": "Session not found"}

    def test_revoke_all_for_user(self, conn, user_id, other_user_id):
        mine = [session.create_session(conn, user_id) for _ in range(2)]
        theirs = session.create_session(conn, other_user_id)

        result = session.revoke_all_sessions(conn, user_id)

        assert result["revoked_count"] == 2
        assert all(not session.validate_session(conn, s["token"])["valid"] for s in mine)
        assert session.validate_session(conn, theirs["token"])["valid"] is True

    def test_cleanup_removes_expired_and_revoked(self, conn, user_id, now):
        expired = session.create_session(conn, user_id, ttl_hours=1, now=now - timedelta(days=1))
        revoked = session.create_session(conn, user_id, now=now)
        session.revoke_session(conn, revoked["token"])
        session.create_session(conn, user_id, now=now)

        assert session.cleanup_expired(conn, now=now) == 2
        assert session.validate_session(conn, expired["token"], now=now)["reason"] == "token_not_found"
