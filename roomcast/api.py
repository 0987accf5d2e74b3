from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from roomcast.errors import DeliveryError, InvalidArgumentError
from roomcast.events import broadcaster
from roomcast.schemas import PublishIn, PublishOut
from roomcast.stream import EventStream


router = APIRouter()


# ============================================================
# SSE events
# ============================================================

def _open_stream(rooms: List[str]) -> StreamingResponse:
    stream = EventStream()
    for name in rooms:
        broadcaster.subscribe(name, stream)

    def leave() -> None:
        for name in rooms:
            broadcaster.unsubscribe(name, stream)

    return stream.response(on_close=leave)


@router.get("/events")
async def events_stream(room: Optional[List[str]] = Query(default=None)):
    rooms = [name.strip() for name in (room or [])]
    if not rooms or not all(rooms):
        raise HTTPException(status_code=422, detail="At least one non-empty room is required")
    return _open_stream(rooms)


# ============================================================
# Publishing
# ============================================================

async def _publish_impl(room: str, payload: PublishIn) -> PublishOut:
    failures = 0

    def settle(error: Optional[DeliveryError], _conn) -> None:
        nonlocal failures
        if error is not None:
            failures += 1

    subscribers = broadcaster.subscriber_count(room)
    try:
        broadcaster.publish(room, payload.model_dump(exclude_none=True), settle)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PublishOut(room=room, subscribers=subscribers, failures=failures)


@router.post("/rooms/{room}/events")
async def publish_event(room: str, payload: PublishIn):
    return await _publish_impl(room, payload)


@router.get("/rooms")
async def list_rooms():
    return {name: len(members) for name, members in broadcaster.rooms.items()}


@router.get("/health")
async def health():
    return {"status": "ok"}
