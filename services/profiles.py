"""Profile store: one profile record per user in the profiles table."""

import logging
from typing import Any, Dict, Optional

from models.dynamodb import ProfileItem
from models.profile import (merge_profile, normalize_profile_input,
                            validate_profile_create, validate_profile_update)
from services.storage import StorageAdapter
from utils import clock
from utils.exceptions import ValidationFailedError
from utils.identity import Principal

logger = logging.getLogger(__name__)


class ProfileStore:
    """Read, create and patch the caller's profile."""

    def __init__(self, storage: StorageAdapter, table: str, principal: Principal):
        self.storage = storage
        self.table = table
        self.principal = principal

    def get_profile(self) -> Optional[Dict[str, Any]]:
        return self.storage.point_get(self.table, self.principal.user_id)

    def save_profile(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create the profile on first save, patch it afterwards.

        A verified token email always wins over an email in the body.

        Raises:
            ValidationFailedError: with every field error found
        """
        patch = normalize_profile_input(raw)
        token_email = self.principal.email
        today = clock.utc_now().date()

        existing = self.get_profile()
        if existing:
            errors = validate_profile_update(patch, existing, today=today)
        else:
            candidate = dict(patch)
            if token_email:
                candidate["email"] = token_email
            errors = validate_profile_create(candidate, today=today)

        if errors:
            raise ValidationFailedError(errors)

        merged = merge_profile(
            existing, patch, self.principal.user_id, token_email, clock.now_iso()
        )
        item = ProfileItem(**merged).model_dump(exclude_none=True)
        self.storage.put(self.table, item)
        logger.info(
            "Profile %s",
            "updated" if existing else "created",
            extra={"user_id": self.principal.user_id},
        )
        return item
