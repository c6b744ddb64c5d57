"""Saved target contacts and app flags persisted in a Supabase key-value table."""
import json
import logging
from typing import List, Optional
from supabase import create_client, Client

from models.contact import Contact
from config import (
    SUPABASE_URL,
    SUPABASE_KEY,
    STORAGE_TABLE,
    SAVED_TARGET_CONTACTS_KEY,
    ONBOARDING_COMPLETED_KEY,
)

logger = logging.getLogger(__name__)


class TargetNotFoundError(KeyError):
    """No saved target with the given contact id."""


class TargetStore:
    """Stores the user's chosen contacts as one JSON array under a fixed key."""

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        table_name: str = STORAGE_TABLE
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Key-value table with `key` and `value` columns

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"TargetStore initialized with table: {table_name}")

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for `key`, or None when absent."""
        result = self.client.table(self.table_name).select("value").eq("key", key).execute()
        if result.data:
            return result.data[0]["value"]
        return None

    def set_item(self, key: str, value: str) -> None:
        self.client.table(self.table_name).upsert({"key": key, "value": value}).execute()

    def load_targets(self) -> List[Contact]:
        """
        Load the saved targets.

        A missing or unreadable entry yields an empty list.
        """
        try:
            raw = self.get_item(SAVED_TARGET_CONTACTS_KEY)
        except Exception as e:
            logger.error(f"Failed to load target contacts: {e}")
            raise

        if raw is None:
            return []
        try:
            targets = [Contact.from_dict(item) for item in json.loads(raw)]
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"Stored target contacts are unreadable, ignoring them: {e}")
            return []

        logger.info(f"Loaded saved target contacts: {len(targets)}")
        return targets

    def save_targets(self, targets: List[Contact]) -> None:
        """Replace the saved targets with `targets`."""
        value = json.dumps([target.to_dict() for target in targets], ensure_ascii=False)
        try:
            self.set_item(SAVED_TARGET_CONTACTS_KEY, value)
        except Exception as e:
            logger.error(f"Failed to save target contacts: {e}")
            raise
        logger.info(f"Target contacts updated: {len(targets)}")

    def remove_target(self, contact_id: str) -> List[Contact]:
        """
        Remove one saved target and return the remaining ones.

        Raises:
            TargetNotFoundError: If no saved target has `contact_id`
        """
        targets = self.load_targets()
        remaining = [target for target in targets if target.id != contact_id]
        if len(remaining) == len(targets):
            raise TargetNotFoundError(contact_id)

        self.save_targets(remaining)
        logger.info(f"Removed target contact {contact_id}")
        return remaining

    def is_onboarding_completed(self) -> bool:
        return self.get_item(ONBOARDING_COMPLETED_KEY) is not None

    def mark_onboarding_completed(self) -> None:
        self.set_item(ONBOARDING_COMPLETED_KEY, "true")
        logger.info("Onboarding completed and status saved")
