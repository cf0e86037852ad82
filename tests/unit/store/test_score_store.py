"""Tests for grindproof/store/accountability_scores.py

One score per (user, week_start). Create rejects duplicates; the roast and
evening-reflection flows merge through upsert_for_week.
"""

from datetime import date, datetime, timezone

import pytest

from grindproof.errors import ConflictError, NotFoundError, ValidationError
from grindproof.store import accountability_scores as scores


class TestWeekKey:
    @pytest.mark.parametrize(
        "value",
        ["2026-10-11", "2026-10-11T09:30:00Z", date(2026, 10, 11), datetime(2026, 10, 11, 23, 0, tzinfo=timezone.utc)],
    )
    def test_normalizes_to_date(self, value):
        assert scores.week_key(value) == "2026-10-11"

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError):
            scores.week_key("last week")


class TestCreateScore:
    def test_round_trip_through_week_lookup(self, conn, user_id):
        created = scores.create_score(
            conn, user_id, "2026-10-11", alignment_score=0.8, honesty_score=0.5, completion_rate=0.6
        )

        fetched = scores.get_score_by_week(conn, user_id, "2026-10-11")

        assert fetched["id"] == created["id"]
        assert fetched["alignment_score"] == 0.8
        assert fetched["insights"] == []
        assert fetched["recommendations"] == []
        assert fetched["week_summary"] is None
        assert fetched["new_projects_started"] == 0

    def test_duplicate_week_rejected(self, conn, user_id, other_user_id):
        scores.create_score(conn, user_id, "2026-10-11")

        with pytest.raises(ConflictError, match="already exists for this week"):
            scores.create_score(conn, user_id, "2026-10-11T12:00:00Z")
        # Same week for someone else is fine
        scores.create_score(conn, other_user_id, "2026-10-11")

    @pytest.mark.parametrize(
        "fields",
        [{"alignment_score": 1.5}, {"honesty_score": -0.1}, {"evidence_submissions": -1}, {"insights": "nope"}],
    )
    def test_out_of_range_rejected(self, conn, user_id, fields):
        with pytest.raises(ValidationError):
            scores.create_score(conn, user_id, "2026-10-11", **fields)

    def test_missing_week_is_none(self, conn, user_id):
        assert scores.get_score_by_week(conn, user_id, "2026-01-04") is None


class TestUpsertForWeek:
    def test_insert_then_merge(self, conn, user_id):
        first = scores.upsert_for_week(conn, user_id, "2026-10-11", {"alignment_score": 0.4, "week_summary": "meh"})
        second = scores.upsert_for_week(conn, user_id, "2026-10-11", {"alignment_score": 0.9})

        assert second["id"] == first["id"]
        assert second["alignment_score"] == 0.9
        assert second["week_summary"] == "meh"
        assert len(scores.list_scores(conn, user_id)) == 1

    def test_unknown_field_rejected(self, conn, user_id):
        with pytest.raises(ValidationError, match="Cannot set fields"):
            scores.upsert_for_week(conn, user_id, "2026-10-11", {"user_id": "x"})


class TestUpdateDeleteScore:
    def test_update_json_fields(self, conn, user_id):
        score = scores.create_score(conn, user_id, "2026-10-11")

        updated = scores.update_score(
            conn, user_id, score["id"], {"insights": [{"emoji": "🔥", "text": "ok", "severity": "positive"}]}
        )

        assert updated["insights"][0]["severity"] == "positive"

    def test_other_user_cannot_touch(self, conn, user_id, other_user_id):
        score = scores.create_score(conn, user_id, "2026-10-11")

        with pytest.raises(NotFoundError):
            scores.get_score(conn, other_user_id, score["id"])
        with pytest.raises(NotFoundError):
            scores.update_score(conn, other_user_id, score["id"], {"week_summary": "x"})
        with pytest.raises(NotFoundError):
            scores.delete_score(conn, other_user_id, score["id"])

    def test_list_newest_week_first(self, conn, user_id):
        scores.create_score(conn, user_id, "2026-09-27")
        scores.create_score(conn, user_id, "2026-10-11")

        assert [s["week_start"] for s in scores.list_scores(conn, user_id)] == ["2026-10-11", "2026-09-27"]
