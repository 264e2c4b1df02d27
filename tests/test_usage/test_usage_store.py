"""Tests for UsageLog model and UsageStore."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from mock_interview.usage.models import UsageLog, UsageRecord
from mock_interview.usage.usage_store import UsageStore


# --- UsageLog model tests ---


class TestUsageLog:
    def test_create_minimal(self):
        log = UsageLog(user_id="u1")
        assert log.user_id == "u1"
        assert log.interview_id is None
        assert log.total_tokens == 0
        assert log.total_cost == 0.0
        assert log.details == []
        assert log.completed_at is None
        assert log.id  # uuid auto-generated

    def test_unique_ids(self):
        assert UsageLog(user_id="u1").id != UsageLog(user_id="u1").id

    def test_timestamp_auto(self):
        before = datetime.now()
        log = UsageLog(user_id="u1")
        after = datetime.now()
        assert before <= log.created_at <= after

    def test_record_cost_property(self):
        record = UsageRecord(
            function_name="respond_to_answer",
            text_cost=0.001,
            speech_cost=0.002,
            transcription_cost=0.003,
        )
        assert record.cost == pytest.approx(0.006)


# --- UsageStore tests ---


@pytest.fixture
def store(tmp_path: Path) -> UsageStore:
    return UsageStore(db_path=tmp_path / "test_usage.db")


def _log(user_id: str = "u1", tokens: int = 1000, **kwargs) -> UsageLog:
    return UsageLog(user_id=user_id, total_tokens=tokens, **kwargs)


class TestUsageStore:
    def test_save_and_get(self, store: UsageStore):
        log = _log(
            interview_id="iv-1",
            category="Backend Developer",
            details=[UsageRecord(function_name="evaluate_interview", total_tokens=1000)],
        )
        store.save_log(log)
        logs = store.get_logs("u1")
        assert len(logs) == 1
        assert logs[0].id == log.id
        assert logs[0].category == "Backend Developer"
        assert logs[0].details[0].function_name == "evaluate_interview"

    def test_get_logs_scoped_to_user(self, store: UsageStore):
        store.save_log(_log("u1"))
        store.save_log(_log("u2"))
        store.save_log(_log("u1"))
        assert len(store.get_logs("u1")) == 2
        assert len(store.get_logs("u2")) == 1

    def test_get_logs_newest_first(self, store: UsageStore):
        now = datetime.now()
        store.save_log(_log(category="old", created_at=now - timedelta(days=1)))
        store.save_log(_log(category="new", created_at=now))
        assert [log.category for log in store.get_logs("u1")] == ["new", "old"]

    def test_pagination(self, store: UsageStore):
        now = datetime.now()
        for i in range(5):
            store.save_log(_log(tokens=i, created_at=now - timedelta(minutes=i)))
        first = store.get_logs("u1", page=1, limit=2)
        third = store.get_logs("u1", page=3, limit=2)
        assert [log.total_tokens for log in first] == [0, 1]
        assert [log.total_tokens for log in third] == [4]
        assert store.count_logs("u1") == 5

    def test_get_logs_empty(self, store: UsageStore):
        assert store.get_logs("u1") == []
        assert store.count_logs("u1") == 0

    def test_one_log_per_interview(self, store: UsageStore):
        store.save_log(_log(interview_id="iv-1"))
        with pytest.raises(sqlite3.IntegrityError):
            store.save_log(_log(interview_id="iv-1"))

    def test_standalone_logs_allowed(self, store: UsageStore):
        store.save_log(_log())
        store.save_log(_log())
        assert store.count_logs("u1") == 2

    def test_get_by_interview(self, store: UsageStore):
        store.save_log(_log(interview_id="iv-1"))
        assert store.get_by_interview("iv-1").interview_id == "iv-1"
        assert store.get_by_interview("missing") is None

    def test_user_stats(self, store: UsageStore):
        store.save_log(_log(tokens=1000, total_cost=0.01))
        store.save_log(_log(tokens=2001, total_cost=0.02))
        store.save_log(_log("u2", tokens=99999))
        stats = store.get_user_stats("u1")
        assert stats.total_tokens_all_time == 3001
        assert stats.total_interviews == 2
        assert stats.avg_tokens_per_interview == pytest.approx(1500.5)
        assert stats.total_cost_all_time == pytest.approx(0.03)

    def test_user_stats_empty(self, store: UsageStore):
        stats = store.get_user_stats("nobody")
        assert stats.total_tokens_all_time == 0
        assert stats.total_interviews == 0
        assert stats.avg_tokens_per_interview == 0.0

    def test_finalize_sets_completed_at(self, store: UsageStore):
        store.save_log(_log(interview_id="iv-1"))
        finalized = store.finalize("iv-1")
        assert finalized.completed_at is not None

    def test_finalize_keeps_existing_timestamp(self, store: UsageStore):
        stamp = datetime(2024, 1, 1, 12, 0)
        store.save_log(_log(interview_id="iv-1", completed_at=stamp))
        assert store.finalize("iv-1").completed_at == stamp

    def test_finalize_missing(self, store: UsageStore):
        assert store.finalize("missing") is None
