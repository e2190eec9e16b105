"""Translation of caller actions into contract operations.

Every action maps onto one of two contract functions. Translation is pure and
must run before a nonce is allocated, so a request that cannot succeed never
burns a sequence number.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass

from web3 import Web3

from txrelay.errors import ValidationError


class Operation(str, enum.Enum):
    INCREMENT_COUNTER = "click"
    RECORD_SCORE = "submitScore"

    @property
    def contract_fn(self) -> str:
        return self.value


class Action(str, enum.Enum):
    CLICK = "click"
    SUBMIT_SCORE = "submitScore"
    GAME_OVER = "game_over"
    POWERUP = "powerup"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _ALIASES.get(value)
        return None


_ALIASES = {
    "increment": Action.CLICK,
    "powerupAlias": Action.POWERUP,
    "compositeGameOver": Action.GAME_OVER,
}

# action -> (operation, score required, default score)
DISPATCH: dict[Action, tuple[Operation, bool, int | None]] = {
    Action.CLICK: (Operation.INCREMENT_COUNTER, False, None),
    Action.POWERUP: (Operation.INCREMENT_COUNTER, False, None),
    Action.SUBMIT_SCORE: (Operation.RECORD_SCORE, True, None),
    Action.GAME_OVER: (Operation.RECORD_SCORE, False, 0),
}

SUPPORTED_ACTIONS = [a.value for a in Action]


@dataclass(frozen=True)
class PreparedCall:
    """A fully validated contract call, reused unchanged on retry."""

    operation: Operation
    player_address: str
    score: int | None = None

    @property
    def args(self) -> list:
        if self.operation is Operation.RECORD_SCORE:
            return [self.score, self.player_address]
        return [self.player_address]


def parse_action(action: str) -> Action:
    try:
        return Action(action)
    except ValueError:
        raise ValidationError(
            f"Invalid action '{action}'. Supported actions: {', '.join(SUPPORTED_ACTIONS)}",
            field="action",
        ) from None


def _coerce_score(score) -> int:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError("Invalid or missing 'score' parameter", field="score")
    if isinstance(score, float):
        if not score.is_integer():
            raise ValidationError("'score' must be a whole number", field="score")
        score = int(score)
    if score < 0:
        raise ValidationError("'score' must not be negative", field="score")
    return score


def translate(player_address: str, action: str, score=None) -> PreparedCall:
    """Resolve an incoming action into the contract call it stands for."""
    resolved = parse_action(action)
    operation, score_required, default_score = DISPATCH[resolved]

    if not isinstance(player_address, str) or not Web3.is_address(player_address):
        raise ValidationError(
            f"Invalid player address '{player_address}'", field="playerAddress"
        )
    address = Web3.to_checksum_address(player_address)

    if operation is Operation.INCREMENT_COUNTER:
        return PreparedCall(operation, address)

    if score is None:
        if score_required:
            raise ValidationError(
                f"Invalid or missing 'score' parameter for {resolved.value} action.",
                field="score",
            )
        score = default_score
    return PreparedCall(operation, address, _coerce_score(score))
