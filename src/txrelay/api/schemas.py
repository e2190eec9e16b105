from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class RelayInteractionRequest(BaseModel):
    """Incoming relay body. Required-field checks happen in the route so the
    response can carry the relay's own 400 payload."""

    player_address: str | None = Field(
        default=None,
        validation_alias=AliasChoices("playerAddress", "subjectAddress", "player_address"),
    )
    action: str | None = None
    # passed through untouched; txrelay.actions.translate validates it
    score: Any = None


class RelayInteractionResponse(BaseModel):
    success: bool = True
    txHash: str


class ErrorResponse(BaseModel):
    error: str
