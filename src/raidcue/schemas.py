"""Response shapes for the reporting service and the platform envelope."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _DTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class Player(_DTO):
    id: str
    membership_type: int = Field(alias="membershipType")
    display_name: str = Field(alias="displayName")
    display_name_code: int = Field(alias="displayNameCode")
    full_display_name: str = Field(alias="fullDisplayName")
    emblem_path: str | None = Field(None, alias="lastPlayedCharacterEmblemPath")
    background_path: str | None = Field(None, alias="lastPlayedCharacterBackgroundPath")


class PlayerSearchResult(_DTO):
    id: str
    membership_type: int = Field(alias="membershipType")
    full_display_name: str = Field(alias="fullDisplayName")
    emblem_path: str | None = Field(None, alias="lastPlayedCharacterEmblemPath")


class Activity(_DTO):
    id: str
    name: str
    image_url: str = Field(alias="imageURL")
    index: int
    op_type_id: int = Field(alias="opTypeId")


class OpType(_DTO):
    id: int
    name: str
    activities: list[Activity] = Field(default_factory=list)


class ActivityReport(_DTO):
    id: str
    instance_id: str = Field(alias="instanceId")
    date: datetime
    player_id: str = Field(alias="playerId")
    activity_id: str = Field(alias="activityId")
    completed: bool
    duration: str
    player: Player | None = None


class ActivityLoadResponse(_DTO):
    success: bool


class LeaderboardEntry(_DTO):
    player: Player
    rank: int
    data: str  # Completion count or formatted time, depending on the board


class PlatformEnvelope(_DTO):
    """Wrapper the platform puts around every response."""

    response: Any = Field(alias="Response")
    error_code: int = Field(1, alias="ErrorCode")
    message: str = Field("Ok", alias="Message")


def validator(shape: Any) -> Callable[[Any], Any]:
    """Build a ``validate(json) -> T`` callable for any type pydantic knows."""
    adapter = TypeAdapter(shape)
    return adapter.validate_python


class Manifest(_DTO):
    """The parts of the platform manifest this package relies on."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str
    world_component_paths: dict[str, dict[str, str]] = Field(
        alias="jsonWorldComponentContentPaths"
    )
