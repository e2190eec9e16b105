from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from txrelay.api.schemas import ErrorResponse, RelayInteractionRequest, RelayInteractionResponse
from txrelay.dependencies import RelayQueueDep
from txrelay.errors import ValidationError
from txrelay.services.relay_queue import RelayRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

MISSING_FIELDS_ERROR = "Invalid request. 'playerAddress' and 'action' are required."
INVALID_BODY_ERROR = "Invalid request body."
SUBMISSION_FAILED_ERROR = "Transaction failed"


@router.post(
    "/relayInteraction",
    response_model=RelayInteractionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def relay_interaction(body: RelayInteractionRequest, queue: RelayQueueDep):
    """Queue a player action and wait for its transaction hash."""
    if not body.player_address or not body.action:
        return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_ERROR})

    outcome = await queue.submit(
        RelayRequest(player_address=body.player_address, action=body.action, score=body.score)
    )
    if outcome.ok:
        return RelayInteractionResponse(txHash=outcome.tx_hash)

    if isinstance(outcome.error, ValidationError):
        return JSONResponse(status_code=400, content={"error": str(outcome.error)})

    logger.error(
        "Relayer error",
        extra={"action": body.action, "player": body.player_address, "error": str(outcome.error)},
    )
    return JSONResponse(status_code=500, content={"error": SUBMISSION_FAILED_ERROR})
