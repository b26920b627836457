"""
Paisa Ledger Backend API

A FastAPI backend for expense tracking, group splits and settling up.
This module sets up the app and mounts routers - all endpoint logic is in routers/.
"""

import logging
import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import models
from database import engine
from errors import AppError
from utils.notifications import NotificationService
from utils.realtime import ConnectionManager

# Import routers
from routers import auth, profile, groups, members, expenses, income, budgets, analytics, settlements, notifications


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
NOTIFICATION_COOLDOWN_MINUTES = int(os.getenv("NOTIFICATION_COOLDOWN_MINUTES", "60"))

# Initialize FastAPI app
app = FastAPI(
    title="Paisa Ledger API",
    description="API for expenses, budgets, group splits and settlements",
    version="1.0.0"
)

# One hub and one notification service per process, shared by every request
app.state.connections = ConnectionManager()
app.state.notification_service = NotificationService(
    app.state.connections,
    cooldown_minutes=NOTIFICATION_COOLDOWN_MINUTES
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **exc.extra}
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(groups.router)
app.include_router(members.router)
app.include_router(expenses.router)
app.include_router(income.router)
app.include_router(budgets.router)
app.include_router(analytics.router)
app.include_router(settlements.router)
app.include_router(notifications.router)
