"""Player identity models shared across resolution, assets and the pipeline."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class ProviderId(BaseModel):
    """Opaque per-source identifier plus the source tag."""

    source: str
    value: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.source}:{self.value}"


class Player(BaseModel):
    """Internal player identity as stored in the ``players`` collection."""

    player_id: str = Field(..., min_length=1)
    display_name: str = ""
    provider_ids: Dict[str, str] = Field(default_factory=dict)
    photo_refs: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def provider_id(self, source: str) -> ProviderId | None:
        value = self.provider_ids.get(source)
        if not value:
            return None
        return ProviderId(source=source, value=value)

    @classmethod
    def from_document(cls, player_id: str, document: Dict[str, Any]) -> "Player":
        data = dict(document)
        data.setdefault("playerId", player_id)
        # Legacy documents carry the display name under ``strPlayer``.
        if "displayName" not in data and "strPlayer" in data:
            data["displayName"] = data["strPlayer"]
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class RawRecord(BaseModel):
    """Payload returned by one adapter call, owned by the extraction step."""

    source: str
    provider_id: str
    payload: Any
    content_type: str = "application/json"
