"""Realtime notification socket.

Clients connect to ``/ws/{user_id}`` and receive notifications as
``{"type": "notification", "message_id": "...", "data": {...}}`` messages.
Client messages:

- ``{"type": "ping"}``: answered with ``pong``; keeps the session active
- ``{"type": "mark_read", "notification_id": "..."}``: answered with
  ``notification_read``
- ``{"type": "ack", "message_id": "..."}``: confirms a notification message
  was shown; marks that realtime attempt delivered and is answered with
  ``acknowledged``
"""

import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import (
    InvalidTransitionError,
    NotificationNotFoundError,
)
from infrastructure.notifications.models import Channel, utc_now
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.sessions import WebSocketSession
from infrastructure.services import NotificationServiceDep

logger = get_module_logger()
router = APIRouter(tags=["Realtime"])


def _event(event_type: str, **fields: Any) -> Dict[str, Any]:
    return {"type": event_type, "timestamp": utc_now().isoformat(), **fields}


async def _acknowledge(
    websocket: WebSocket,
    session: WebSocketSession,
    service: NotificationService,
    message_id: Any,
) -> None:
    if not message_id or not isinstance(message_id, str):
        await websocket.send_json(_event("error", message="message_id is required"))
        return
    # Only messages written to this socket can be acknowledged on it
    notification = None
    if message_id.startswith(f"ws:{session.session_id}:"):
        notification = await run_in_threadpool(
            service.on_provider_status, message_id, "delivered", None, Channel.REALTIME
        )
    if notification is None:
        await websocket.send_json(_event("error", message=f"Unknown message_id: {message_id}"))
        return
    await websocket.send_json(
        _event(
            "acknowledged",
            message_id=message_id,
            notification_id=notification.id,
            status=notification.status.value,
        )
    )


async def _handle_message(
    websocket: WebSocket,
    session: WebSocketSession,
    service: NotificationService,
    message: Dict[str, Any],
) -> None:
    service.sessions.touch(session)
    message_type = message.get("type")

    if message_type == "ping":
        await websocket.send_json(_event("pong"))
        return

    if message_type == "mark_read":
        notification_id = message.get("notification_id")
        if not notification_id:
            await websocket.send_json(_event("error", message="notification_id is required"))
            return
        try:
            notification = await run_in_threadpool(
                service.mark_read, notification_id, session.user_id
            )
        except (NotificationNotFoundError, InvalidTransitionError) as e:
            await websocket.send_json(_event("error", message=str(e)))
            return
        await websocket.send_json(
            _event(
                "notification_read",
                notification_id=notification.id,
                read_at=notification.read_at.isoformat() if notification.read_at else None,
            )
        )
        return

    if message_type == "ack":
        await _acknowledge(websocket, session, service, message.get("message_id"))
        return

    await websocket.send_json(_event("error", message=f"Unknown message type: {message_type}"))


@router.websocket("/ws/{user_id}")
async def realtime_socket(websocket: WebSocket, user_id: str, service: NotificationServiceDep):
    await websocket.accept()
    session = WebSocketSession(user_id, websocket, loop=asyncio.get_running_loop())
    service.sessions.register(user_id, session)

    try:
        unread = await run_in_threadpool(service.unread_count, user_id)
        await websocket.send_json(
            _event(
                "connected",
                session_id=session.session_id,
                user_id=user_id,
                unread_count=unread,
            )
        )
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json(_event("error", message="Invalid JSON"))
                continue
            if not isinstance(message, dict):
                await websocket.send_json(_event("error", message="Expected a JSON object"))
                continue
            await _handle_message(websocket, session, service, message)
    except WebSocketDisconnect as e:
        logger.info(
            "realtime_client_disconnected",
            user_id=user_id,
            session_id=session.session_id,
            code=e.code,
        )
    finally:
        service.sessions.unregister(session)
