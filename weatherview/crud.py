"""
Key-value store on top of SQLAlchemy.

Why keep this separate from main.py?
- the location resolver only needs get_item(); it never gets a Session
- tests can swap in a dict-backed fake with the same methods
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from . import models
from .schemas import CustomLocation

logger = logging.getLogger(__name__)

CUSTOM_LOCATION_KEY = "customLocation"


class KeyValueStore:
    """String values addressed by key, one row per key."""

    def __init__(self, db: Session):
        self.db = db

    def get_item(self, key: str) -> Optional[str]:
        row = self.db.get(models.StoredItem, key)
        return row.value if row is not None else None

    def set_item(self, key: str, value: str) -> None:
        row = self.db.get(models.StoredItem, key)
        if row is None:
            row = models.StoredItem(key=key, value=value)
        else:
            row.value = value
        row.updated_at = datetime.utcnow()
        self.db.add(row)
        self.db.commit()

    def remove_item(self, key: str) -> bool:
        row = self.db.get(models.StoredItem, key)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True


def parse_custom_location(raw: Optional[str]) -> Optional[CustomLocation]:
    """
    Decode a stored custom location record.
    Returns None for a missing or malformed record.
    """
    if raw is None:
        return None
    try:
        return CustomLocation.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed %s record: %s", CUSTOM_LOCATION_KEY, e.errors(include_url=False))
        return None


def load_custom_location(store: KeyValueStore) -> Optional[CustomLocation]:
    return parse_custom_location(store.get_item(CUSTOM_LOCATION_KEY))


def save_custom_location(store: KeyValueStore, location: CustomLocation) -> None:
    store.set_item(CUSTOM_LOCATION_KEY, json.dumps(location.model_dump()))


def clear_custom_location(store: KeyValueStore) -> bool:
    return store.remove_item(CUSTOM_LOCATION_KEY)
