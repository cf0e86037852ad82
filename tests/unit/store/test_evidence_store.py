"""Tests for grindproof/store/evidence.py

Evidence has no user column; ownership flows through its task. Evidence
with no task reference is readable by id without an ownership check.
"""

import pytest

from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import evidence


class TestCreateEvidence:
    def test_create_for_own_task(self, conn, user_id, make_task):
        task = make_task()

        item = evidence.create_evidence(conn, user_id, task["id"], "photo", "s3://proof.jpg")

        assert item["task_id"] == task["id"]
        assert item["ai_validated"] is False
        assert item["submitted_at"]

    def test_cannot_attach_to_other_users_task(self, conn, other_user_id, make_task):
        task = make_task()

        with pytest.raises(NotFoundError, match="Task not found or access denied"):
            evidence.create_evidence(conn, other_user_id, task["id"], "text", "fake")

    @pytest.mark.parametrize("kind, content", [("video", "x"), ("text", "")])
    def test_invalid_input(self, conn, user_id, kind, content):
        with pytest.raises(ValidationError):
            evidence.create_evidence(conn, user_id, None, kind, content)


class TestReadEvidence:
    def test_list_filters_by_task_and_type(self, conn, user_id, other_user_id, make_task):
        first, second = make_task("a"), make_task("b")
        evidence.create_evidence(conn, user_id, first["id"], "text", "one")
        evidence.create_evidence(conn, user_id, second["id"], "link", "https://two")
        theirs = make_task("c", owner=other_user_id)
        evidence.create_evidence(conn, other_user_id, theirs["id"], "text", "not mine")

        assert len(evidence.list_evidence(conn, user_id)) == 2
        assert [e["content"] for e in evidence.list_evidence(conn, user_id, task_id=first["id"])] == ["one"]
        assert [e["content"] for e in evidence.list_evidence(conn, user_id, evidence_type="link")] == ["https://two"]
        assert evidence.list_evidence(conn, user_id, task_id=theirs["id"]) == []

    def test_orphan_evidence_is_readable_by_anyone(self, conn, user_id, other_user_id):
        orphan = evidence.create_evidence(conn, user_id, None, "text", "floating")

        assert evidence.get_evidence(conn, other_user_id, orphan["id"])["content"] == "floating"

    def test_task_evidence_hidden_from_other_users(self, conn, user_id, other_user_id, make_task):
        item = evidence.create_evidence(conn, user_id, make_task()["id"], "text", "private")

        with pytest.raises(NotFoundError):
            evidence.get_evidence(conn, other_user_id, item["id"])

    def test_by_task_requires_ownership(self, conn, user_id, other_user_id, make_task):
        task = make_task()
        evidence.create_evidence(conn, user_id, task["id"], "text", "x")

        assert len(evidence.get_evidence_by_task(conn, user_id, task["id"])) == 1
        with pytest.raises(NotFoundError):
            evidence.get_evidence_by_task(conn, other_user_id, task["id"])


class TestWriteEvidence:
    def test_update_validation_flag(self, conn, user_id, make_task):
        item = evidence.create_evidence(conn, user_id, make_task()["id"], "text", "x")

        updated = evidence.update_evidence(
            conn, user_id, item["id"], {"ai_validated": True, "validation_notes": "looks real"}
        )

        assert updated["ai_validated"] is True
        assert updated["validation_notes"] == "looks real"

    def test_update_rejects_unknown_fields(self, conn, user_id, make_task):
        item = evidence.create_evidence(conn, user_id, make_task()["id"], "text", "x")

        with pytest.raises(ValidationError, match="Cannot update fields"):
            evidence.update_evidence(conn, user_id, item["id"], {"submitted_at": "2020-01-01"})

    def test_delete_checks_ownership(self, conn, user_id, other_user_id, make_task):
        item = evidence.create_evidence(conn, user_id, make_task()["id"], "text", "x")

        with pytest.raises(NotFoundError):
            evidence.delete_evidence(conn, other_user_id, item["id"])
        evidence.delete_evidence(conn, user_id, item["id"])
        with pytest.raises(NotFoundError):
            evidence.get_evidence(conn, user_id, item["id"])

    def test_deleting_task_removes_its_evidence(self, conn, user_id, make_task):
        from grindproof.store import tasks

        task = make_task()
        item = evidence.create_evidence(conn, user_id, task["id"], "text", "x")

        tasks.delete_task(conn, user_id, task["id"])

        with pytest.raises(NotFoundError):
            evidence.get_evidence(conn, user_id, item["id"])
