"""Shared dependencies for authentication and service wiring."""

from datetime import date
from typing import Annotated
from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

import auth
from database import SessionLocal, get_db
from utils.notifications import NotificationService
from utils.realtime import ConnectionManager
from utils.validation import get_user_by_email


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)], 
    db: Session = Depends(get_db)
):
    """Get the current authenticated user from the JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    email = auth.decode_access_token(token)
    if email is None:
        raise credentials_exception
    user = get_user_by_email(db, email=email)
    if user is None:
        raise credentials_exception
    return user


def get_notification_service(request: Request) -> NotificationService:
    """The notification service built once at startup in main.py."""
    return request.app.state.notification_service


def get_connection_manager(websocket: WebSocket) -> ConnectionManager:
    return websocket.app.state.connections


def get_session_factory():
    """Session factory for handlers that must open and close their own short-lived sessions."""
    return SessionLocal


def get_today(notifier: NotificationService = Depends(get_notification_service)) -> date:
    """Today's date on the same clock the budget alerts use."""
    return notifier.clock().date()
