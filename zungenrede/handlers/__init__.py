"""
Telegram handlers: the aiogram side of the message channel.
"""
from aiogram import Router

from .messages import router as messages_router

router = Router()

router.include_router(messages_router)
