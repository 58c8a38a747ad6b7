"""Centralized v1 API router — all HTTP module routers are included here."""

from fastapi import APIRouter

from src.modules.chat.router import router as chat_router
from src.modules.notifications.router import router as notifications_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(chat_router)
v1_router.include_router(notifications_router)
