# tests/engine/test_history.py
"""ScenarioHistory 测试：有界、最新在前、原子落盘。 / Bounded, newest-first, atomic persistence."""

import json
import os
import stat

import pytest

from parallel_thought.engine.history import MAX_HISTORY_ENTRIES, ScenarioHistory
from parallel_thought.primitives.models import ScenarioRecord


def _record(n, weights):
    return ScenarioRecord.create(f"problem {n}", f"context {n}", weights)


class TestBoundedHistory:
    def test_newest_first(self, weights):
        history = ScenarioHistory()
        first = _record(1, weights)
        second = _record(2, weights)
        history.append(first)
        history.append(second)
        assert history.records == (second, first)

    def test_caps_at_ten(self, weights):
        history = ScenarioHistory()
        records = [_record(n, weights) for n in range(15)]
        for record in records:
            history.append(record)

        assert len(history) == MAX_HISTORY_ENTRIES == 10
        assert list(history) == list(reversed(records))[:10]

    def test_append_replaces_snapshot(self, weights):
        history = ScenarioHistory()
        before = history.records
        after = history.append(_record(1, weights))
        assert before == ()
        assert after is history.records
        assert after is not before

    def test_custom_cap(self, weights):
        history = ScenarioHistory(max_entries=2)
        for n in range(3):
            history.append(_record(n, weights))
        assert [r.problem for r in history] == ["problem 2", "problem 1"]

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            ScenarioHistory(max_entries=0)

    def test_get_by_id(self, weights):
        history = ScenarioHistory()
        record = _record(1, weights)
        history.append(record)
        assert history.get(record.id) is record
        assert history.get("missing") is None


class TestPersistence:
    def test_round_trip(self, tmp_path, weights):
        path = tmp_path / "history.json"
        history = ScenarioHistory(path)
        records = [_record(n, weights) for n in range(3)]
        for record in records:
            history.append(record)

        reloaded = ScenarioHistory(path)
        assert reloaded.records == history.records

    def test_file_is_json_list_with_owner_only_permissions(self, tmp_path, weights):
        path = tmp_path / "history.json"
        ScenarioHistory(path).append(_record(1, weights))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert isinstance(data, list)
        assert data[0]["problem"] == "problem 1"
        assert data[0]["result"] is None
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert not (tmp_path / "history.json.tmp").exists()

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json", encoding="utf-8")
        assert ScenarioHistory(path).records == ()

    def test_non_list_file_starts_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text('{"id": "x"}', encoding="utf-8")
        assert ScenarioHistory(path).records == ()

    def test_invalid_entries_are_skipped(self, tmp_path, weights):
        path = tmp_path / "history.json"
        good = _record(1, weights)
        path.write_text(
            json.dumps([{"id": "broken"}, good.to_dict()]), encoding="utf-8",
        )
        assert ScenarioHistory(path).records == (good,)

    def test_clear_persists(self, tmp_path, weights):
        path = tmp_path / "history.json"
        history = ScenarioHistory(path)
        history.append(_record(1, weights))
        history.clear()
        assert json.loads(path.read_text(encoding="utf-8")) == []
