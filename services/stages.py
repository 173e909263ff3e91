"""Stage config store: one ordered stage list per user, kept in the cards table."""

from typing import Any, Dict

from models.dynamodb import STAGES_SORT_KEY, StageConfigItem
from models.stage import default_stages, validate_stages
from services.storage import StorageAdapter
from utils import clock
from utils.identity import Principal


class StageConfigStore:
    """Read and replace the caller's stage list."""

    def __init__(self, storage: StorageAdapter, table: str, principal: Principal):
        self.storage = storage
        self.table = table
        self.user_id = principal.user_id

    def get_stages(self) -> Dict[str, Any]:
        """
        The stored stage list, or the built-in defaults flagged `defaulted`.

        Defaults are never written by a read.
        """
        item = self.storage.point_get(self.table, self.user_id, STAGES_SORT_KEY)
        if item and item.get("stages"):
            return {"stages": item["stages"], "updatedAt": item.get("updatedAt")}
        return {
            "stages": [stage.model_dump() for stage in default_stages()],
            "defaulted": True,
        }

    def put_stages(self, raw_stages: Any) -> Dict[str, Any]:
        """Validate, then replace the whole list. Invalid input writes nothing."""
        stages = validate_stages(raw_stages)
        item = StageConfigItem(
            userId=self.user_id, stages=stages, updatedAt=clock.now_iso()
        ).model_dump()
        self.storage.put(self.table, item)
        return {"stages": item["stages"], "updatedAt": item["updatedAt"]}
