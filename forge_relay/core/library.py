"""
Saved blueprints and the in-progress form draft.

Both live in a key-value store owned by the consumer (the browser's local
storage in the web UI). They are convenience caches with no bearing on the
relay itself.
"""

import re
import secrets
import string
import time
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from forge_relay.models.requests import GenerationRequest
from forge_relay.utils.logging import get_logger


logger = get_logger("library")

HISTORY_KEY = "ideaforge_blueprints"
DRAFT_KEY = "ideaforge_draft"
HISTORY_LIMIT = 10

_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed KeyValueStore."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SavedBlueprint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    brand_name: str = Field(alias="brandName")
    content: str
    created_at: int = Field(alias="createdAt", description="Milliseconds since the epoch")


_blueprint_list = TypeAdapter(list[SavedBlueprint])


def new_blueprint_id(size: int = 10) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(size))


def blueprint_filename(brand_name: str) -> str:
    """Download name for a blueprint, e.g. "Nova Labs" -> "nova-labs-blueprint.md"."""
    slug = re.sub(r"\s+", "-", brand_name.lower())
    return f"{slug}-blueprint.md"


class BlueprintHistory:
    """Most-recent-first list of saved blueprints, capped at HISTORY_LIMIT."""

    def __init__(self, store: KeyValueStore, limit: int = HISTORY_LIMIT):
        self.store = store
        self.limit = limit

    def entries(self) -> list[SavedBlueprint]:
        raw = self.store.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            return _blueprint_list.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable blueprint history: {e}")
            return []

    def _write(self, blueprints: list[SavedBlueprint]) -> None:
        self.store.set(HISTORY_KEY, _blueprint_list.dump_json(blueprints, by_alias=True).decode("utf-8"))

    def save(self, brand_name: str, content: str) -> SavedBlueprint:
        blueprint = SavedBlueprint(
            id=new_blueprint_id(),
            brand_name=brand_name,
            content=content,
            created_at=int(time.time() * 1000),
        )
        blueprints = [blueprint, *self.entries()][: self.limit]
        self._write(blueprints)
        return blueprint

    def get(self, blueprint_id: str) -> SavedBlueprint | None:
        return next((b for b in self.entries() if b.id == blueprint_id), None)

    def delete(self, blueprint_id: str) -> None:
        self._write([b for b in self.entries() if b.id != blueprint_id])


class DraftStore:
    """Single in-progress GenerationRequest."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self) -> GenerationRequest | None:
        raw = self.store.get(DRAFT_KEY)
        if not raw:
            return None
        try:
            return GenerationRequest.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable draft: {e}")
            return None

    def save(self, draft: GenerationRequest) -> None:
        self.store.set(DRAFT_KEY, draft.model_dump_json(by_alias=True))

    def clear(self) -> None:
        self.store.remove(DRAFT_KEY)
