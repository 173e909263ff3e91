"""
Tests for board stage settings: defaults, validation and replacement.
"""

import pytest

from models.dynamodb import STAGES_SORT_KEY
from models.stage import DEFAULT_STAGES, validate_stages
from utils.exceptions import BadRequestError

TABLE = "cards-test"


class TestStageEndpoints:
    def test_fresh_user_gets_defaults_without_write(self, call_api, memory_storage):
        status, body, _ = call_api("GET", "/settings/stages")
        assert status == 200
        assert body["defaulted"] is True
        assert [stage["key"] for stage in body["stages"]] == [
            "saved",
            "applied",
            "screening",
            "final",
            "closed",
        ]
        assert "put" not in memory_storage.calls

    def test_put_then_get_returns_stored_list(self, call_api):
        status, saved, _ = call_api(
            "PUT", "/settings/stages", {"stages": [{"key": "todo", "name": "Todo"}]}
        )
        assert status == 200
        assert saved["stages"] == [
            {"key": "todo", "name": "Todo", "color": None, "limit": None}
        ]

        _, body, _ = call_api("GET", "/settings/stages")
        assert body["stages"] == saved["stages"]
        assert body["updatedAt"] == saved["updatedAt"]
        assert "defaulted" not in body

    def test_invalid_key_leaves_storage_untouched(self, call_api, memory_storage):
        status, body, _ = call_api(
            "PUT", "/settings/stages", {"stages": [{"key": "BAD KEY", "name": "X"}]}
        )
        assert status == 400
        assert body["error"].startswith("Row 1: key must match")
        assert memory_storage.items(TABLE) == []

    def test_identical_puts_store_identical_stages(self, call_api, memory_storage):
        payload = {"stages": [{"key": "a", "name": "A", "limit": "3"}]}
        call_api("PUT", "/settings/stages", payload)
        first = memory_storage.point_get(TABLE, "u1", STAGES_SORT_KEY)
        call_api("PUT", "/settings/stages", payload)
        second = memory_storage.point_get(TABLE, "u1", STAGES_SORT_KEY)
        assert first["stages"] == second["stages"] == [
            {"key": "a", "name": "A", "color": None, "limit": 3}
        ]

    def test_missing_stages_field(self, call_api):
        status, body, _ = call_api("PUT", "/settings/stages", {})
        assert status == 400
        assert body["error"] == "stages must be a non-empty array"


class TestValidateStages:
    def test_normalizes_rows(self):
        stages = validate_stages(
            [{"key": "  Phone-Screen ", "name": " Phone ", "color": " ", "limit": 2.7}]
        )
        assert stages[0].model_dump() == {
            "key": "phone-screen",
            "name": "Phone",
            "color": None,
            "limit": 2,
        }

    @pytest.mark.parametrize("raw", [None, [], {"key": "a"}, "saved"])
    def test_requires_non_empty_array(self, raw):
        with pytest.raises(BadRequestError) as exc:
            validate_stages(raw)
        assert exc.value.message == "stages must be a non-empty array"

    def test_missing_key(self):
        with pytest.raises(BadRequestError) as exc:
            validate_stages([{"name": "No key"}])
        assert exc.value.message == "Row 1: key is required"

    def test_missing_name(self):
        with pytest.raises(BadRequestError) as exc:
            validate_stages([{"key": "a"}, {"key": "b", "name": "  "}])
        assert exc.value.message == "Row 1: name is required"

    def test_duplicate_key_after_normalization(self):
        with pytest.raises(BadRequestError) as exc:
            validate_stages([{"key": "a", "name": "A"}, {"key": " A ", "name": "Again"}])
        assert exc.value.message == "Row 2: duplicate key 'a'"

    @pytest.mark.parametrize("limit", [0, "0.5", "abc", -1, True])
    def test_bad_limit(self, limit):
        with pytest.raises(BadRequestError) as exc:
            validate_stages([{"key": "a", "name": "A", "limit": limit}])
        assert exc.value.message == "Row 1: limit must be empty or a number >= 1"

    @pytest.mark.parametrize("limit", [None, ""])
    def test_empty_limit_means_no_cap(self, limit):
        assert validate_stages([{"key": "a", "name": "A", "limit": limit}])[0].limit is None

    def test_defaults_are_stable(self):
        assert len(DEFAULT_STAGES) == 5
        assert DEFAULT_STAGES[0].color == "bg-sky-50"
