"""Notifications router: stored notifications over REST and live ones over a WebSocket."""

import logging
from typing import Annotated
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session, sessionmaker

import auth
import models
import schemas
from database import get_db
from dependencies import get_connection_manager, get_current_user, get_notification_service, get_session_factory
from utils.notifications import NotificationService
from utils.realtime import ConnectionManager
from utils.validation import get_user_by_email

logger = logging.getLogger(__name__)


router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=list[schemas.Notification])
def read_notifications(
    current_user: Annotated[models.User, Depends(get_current_user)],
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    return notifier.get_notifications(db, current_user.id, limit)


@router.get("/notifications/unread-count", response_model=schemas.UnreadCount)
def read_unread_count(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    return {"count": notifier.unread_count(db, current_user.id)}


@router.put("/notifications/read-all")
def mark_all_notifications_read(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    updated = notifier.mark_all_as_read(db, current_user.id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/notifications/{notification_id}/read", response_model=schemas.Notification)
def mark_notification_read(
    notification_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    return notifier.mark_as_read(db, current_user.id, notification_id)


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    token: str = Query(default=""),
    session_factory: sessionmaker = Depends(get_session_factory),
    connections: ConnectionManager = Depends(get_connection_manager)
):
    """
    Live notification stream.

    After connecting the client sends {"event": "join-user", "user_id": <id>};
    the id must belong to the token's user. Events then arrive as
    {"event": <name>, "data": <payload>}.
    """
    # The session is closed before accept so an open socket holds no pooled connection
    user_id = None
    email = auth.decode_access_token(token)
    if email:
        with session_factory() as db:
            user = get_user_by_email(db, email)
            if user is not None:
                user_id = user.id
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    try:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict) or message.get("event") != "join-user":
                await websocket.send_json({"event": "error", "data": {"detail": "Unknown event"}})
                continue
            if message.get("user_id") != user_id:
                await websocket.send_json({"event": "error", "data": {"detail": "Cannot join another user's room"}})
                continue
            connections.join(user_id, websocket)
            await websocket.send_json({"event": "joined", "data": {"user_id": user_id}})
    except WebSocketDisconnect:
        logger.debug(f"Notification socket for user {user_id} disconnected")
    finally:
        connections.leave(websocket)
