from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from txrelay.config import Settings
from txrelay.evm.submitter import Web3Submitter
from txrelay.services.relay_queue import RelayQueue


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_relay_queue(request: Request) -> RelayQueue:
    return request.app.state.relay_queue


def get_submitter(request: Request) -> Web3Submitter:
    return request.app.state.submitter


SettingsDep = Annotated[Settings, Depends(get_settings)]
RelayQueueDep = Annotated[RelayQueue, Depends(get_relay_queue)]
SubmitterDep = Annotated[Web3Submitter, Depends(get_submitter)]
