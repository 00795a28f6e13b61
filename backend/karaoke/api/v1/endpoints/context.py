from typing import Any
from fastapi import APIRouter, Depends, HTTPException, Response

from karaoke.schemas.context import SessionContextPayload
from karaoke.services.context_store import ContextStore, SessionContext, get_context_store

router = APIRouter()

@router.get("/{device_id}", response_model=SessionContextPayload)
async def load_context(device_id: str, store: ContextStore = Depends(get_context_store)) -> Any:
    """Restore the identity/session a device saved before a reload."""
    context = await store.load(device_id)
    if context is None:
        raise HTTPException(status_code=404, detail="Nothing saved for this device")
    return SessionContextPayload(user_id=context.user_id, session_id=context.session_id)

@router.put("/{device_id}", response_model=SessionContextPayload)
async def save_context(
    device_id: str,
    payload: SessionContextPayload,
    store: ContextStore = Depends(get_context_store),
) -> Any:
    await store.save(device_id, SessionContext(user_id=payload.user_id, session_id=payload.session_id))
    return payload

@router.delete("/{device_id}", status_code=204)
async def clear_context(device_id: str, store: ContextStore = Depends(get_context_store)):
    await store.clear(device_id)
    return Response(status_code=204)
