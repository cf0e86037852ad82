"""Tests for grindproof/cli.py"""

import json

import pytest

from grindproof import cli
from grindproof.database import get_connection
from grindproof.security import session


def _json_block(output: str) -> dict:
    return json.loads(output[output.index("{"):])


class TestCliActions:
    def test_create_session_hides_token(self, temp_db, capsys):
        cli.main(["--action", "create-session", "--user", "alice", "--ttl", "2", "--db", str(temp_db)])

        out = capsys.readouterr().out
        assert "SESSION TOKEN" in out
        assert _json_block(out)["token"] == "***CREATED***"

    def test_revoke_all_then_cleanup(self, temp_db, capsys):
        conn = get_connection(temp_db)
        session.create_session(conn, "alice")
        session.create_session(conn, "alice")
        conn.close()

        cli.main(["--action", "revoke-all", "--user", "alice", "--db", str(temp_db)])

        assert "OK" in capsys.readouterr().out

    def test_analyze_empty_user(self, temp_db, capsys):
        cli.main(["--action", "analyze", "--user", "nobody", "--db", str(temp_db)])

        result = _json_block(capsys.readouterr().out)
        assert result["analysis"]["task_stats"]["total"] == 0

    def test_user_required(self, temp_db):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--action", "analyze", "--db", str(temp_db)])

        assert exc.value.code == 1

    def test_unknown_token_fails(self, temp_db, capsys):
        with pytest.raises(SystemExit):
            cli.main(["--action", "revoke", "--token", "nope", "--db", str(temp_db)])

        assert "Session not found" in capsys.readouterr().out
