"""
Read-only diagnostics for live calls.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from phonetree_scout.calls.registry import CallRegistry, get_call_registry
from phonetree_scout.shared.exceptions import CallNotFoundError

router = APIRouter(prefix="/calls", tags=["calls"])


@router.get("")
async def list_calls(
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
) -> dict[str, Any]:
    return {"calls": registry.active_call_ids()}


@router.get("/{call_sid}")
async def read_call(
    call_sid: str,
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
) -> dict[str, Any]:
    call = await registry.get(call_sid)
    if call is None:
        raise CallNotFoundError(call_sid)
    return {"callSid": call_sid, **call.to_dict()}
