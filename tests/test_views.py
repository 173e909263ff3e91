"""
Tests for the derived views: faceted stats and due-date reminders.
"""

from datetime import datetime, timezone

import pytest

from models.card import CardFilter
from services.views import (EMPTY_FACET, compute_reminders, compute_stats,
                            parse_due_date, parse_statuses)

NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


class TestComputeStats:
    def test_facets_are_lowercased_and_blank_grouped(self):
        cards = [
            {"status": "Applied", "company": "Acme", "tags": ["remote"]},
            {"status": "applied", "company": "", "tags": ["remote", "us"]},
        ]
        stats = compute_stats(cards)
        assert stats["count"] == 2
        assert stats["totals"]["byStatus"] == {"applied": 2}
        assert stats["totals"]["byCompany"] == {"acme": 1, EMPTY_FACET: 1}
        assert stats["totals"]["byTag"] == {"remote": 2, "us": 1}
        assert stats["totals"]["byTitle"] == {EMPTY_FACET: 2}

    def test_filter_applies_before_counting(self):
        cards = [
            {"status": "applied", "company": "Acme"},
            {"status": "saved", "company": "Globex"},
        ]
        stats = compute_stats(cards, CardFilter.from_params({"status": "Saved"}))
        assert stats["count"] == 1
        assert stats["totals"]["byCompany"] == {"globex": 1}

    def test_facet_sums_equal_count(self):
        cards = [{"status": s, "location": loc} for s, loc in [("a", "x"), ("b", ""), ("a", "y")]]
        stats = compute_stats(cards)
        for facet in ("byStatus", "byCompany", "byTitle", "byLocation"):
            assert sum(stats["totals"][facet].values()) == stats["count"]

    def test_string_tags_count_whole_tags(self):
        cards = [{"tags": "Remote, us"}, {"tags": ["remote"]}]
        stats = compute_stats(cards)
        assert stats["totals"]["byTag"] == {"remote": 2, "us": 1}
        assert CardFilter.from_params({"tag": "us"}).matches(cards[0])
        assert not CardFilter.from_params({"tag": "r"}).matches(cards[0])


class TestParseDueDate:
    def test_bare_date_is_utc_midnight(self):
        assert parse_due_date("2025-03-12") == datetime(2025, 3, 12, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        parsed = parse_due_date("2025-03-12T01:00:00+02:00")
        assert parsed == datetime(2025, 3, 11, 23, 0, tzinfo=timezone.utc)

    def test_zulu_suffix(self):
        assert parse_due_date("2025-03-12T10:00:00Z").hour == 10

    @pytest.mark.parametrize("value", ["", None, "soon", "2025-13-01", 20250312])
    def test_unparseable(self, value):
        assert parse_due_date(value) is None


class TestComputeReminders:
    def test_window_is_inclusive_and_sorted(self):
        cards = [
            {"cardId": "late", "dueDate": "2025-03-17T00:00:00Z", "title": "Late"},
            {"cardId": "past", "dueDate": "2025-03-09"},
            {"cardId": "today", "dueDate": "2025-03-10", "company": "Acme"},
            {"cardId": "beyond", "dueDate": "2025-03-17T00:00:01Z"},
        ]
        result = compute_reminders(cards, days=7, now=NOW)
        assert [item["cardId"] for item in result["items"]] == ["today", "late"]
        assert result["items"][0] == {
            "cardId": "today",
            "title": "(no title)",
            "company": "Acme",
            "status": "",
            "dueDate": "2025-03-10",
        }

    def test_status_filter(self):
        cards = [
            {"cardId": "a", "dueDate": "2025-03-11", "status": "applied"},
            {"cardId": "b", "dueDate": "2025-03-11", "status": "Saved"},
            {"cardId": "c", "dueDate": "2025-03-11", "status": "closed"},
        ]
        result = compute_reminders(
            cards, days=7, now=NOW, statuses=parse_statuses("saved, APPLIED")
        )
        assert sorted(item["cardId"] for item in result["items"]) == ["a", "b"]

    def test_blank_status_list_means_no_filter(self):
        assert parse_statuses(" , ") is None


class TestViewEndpoints:
    def test_stats_seed(self, call_api):
        call_api("POST", "/cards", {"status": "Applied", "company": "Acme", "tags": ["remote"]})
        call_api("POST", "/cards", {"status": "applied", "company": "", "tags": ["remote", "us"]})

        status, stats, _ = call_api("GET", "/stats")
        assert status == 200
        assert stats["count"] == 2
        assert sum(stats["totals"]["byStatus"].values()) == 2
        assert stats["totals"]["byCompany"] == {"acme": 1, "—": 1}
        assert stats["totals"]["byTag"] == {"remote": 2, "us": 1}

    def test_stats_ignore_settings_rows(self, call_api):
        call_api("PUT", "/settings/stages", {"stages": [{"key": "todo", "name": "Todo"}]})
        _, stats, _ = call_api("GET", "/stats")
        assert stats["count"] == 0

    def test_reminders_seed(self, call_api):
        for card_id, due in (("c1", "2025-03-09"), ("c2", "2025-03-12"), ("c3", "2025-03-25")):
            call_api("POST", "/cards", {"cardId": card_id, "dueDate": due, "title": card_id})

        status, body, _ = call_api("GET", "/reminders", query={"days": "7"})
        assert status == 200
        assert body["days"] == 7
        assert body["count"] == 1
        assert [item["cardId"] for item in body["items"]] == ["c2"]

    @pytest.mark.parametrize("days, expected", [("0", 1), ("1000", 60), ("abc", 7), (None, 7)])
    def test_days_clamped(self, call_api, days, expected):
        query = {} if days is None else {"days": days}
        _, body, _ = call_api("GET", "/reminders", query=query)
        assert body["days"] == expected

    def test_default_days_from_environment(self, call_api, monkeypatch):
        monkeypatch.setenv("REMINDER_DEFAULT_DAYS", "14")
        _, body, _ = call_api("GET", "/reminders")
        assert body["days"] == 14

    def test_blank_due_dates_never_remind(self, call_api):
        call_api("POST", "/cards", {"cardId": "c1", "dueDate": ""})
        call_api("POST", "/cards", {"cardId": "c2", "dueDate": None})
        _, body, _ = call_api("GET", "/reminders", query={"days": "60"})
        assert body["items"] == []

    def test_stats_fall_back_to_scan(self, call_api, memory_storage, monkeypatch):
        from botocore.exceptions import ClientError

        call_api("POST", "/cards", {"cardId": "c1", "status": "saved"})

        def failing_query(*args, **kwargs):
            raise ClientError({"Error": {"Code": "ValidationException", "Message": "x"}}, "Query")

        monkeypatch.setattr(memory_storage, "query", failing_query)
        _, stats, _ = call_api("GET", "/stats")
        assert stats["count"] == 1
        assert "scan_partition" in memory_storage.calls
