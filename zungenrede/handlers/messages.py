"""
Text message handler.

Feeds every text message into RequestDispatcher.on_message and sends the
reply back. The dispatcher finishes (and releases the store) before any
Telegram API call is made.

The dispatcher instance is injected by aiogram from the Dispatcher's
workflow data under the name "request_dispatcher".
"""
import logging

from aiogram import F, Router
from aiogram.types import BufferedInputFile, Message

from zungenrede.dispatcher import OutboundReply, ReplyKind, RequestDispatcher

router = Router()
logger = logging.getLogger(__name__)


@router.message(F.text)
async def handle_text(message: Message, request_dispatcher: RequestDispatcher):
    principal = message.from_user.id if message.from_user else None
    reply = await request_dispatcher.on_message(principal, message.text)
    await send_reply(message, reply)


async def send_reply(message: Message, reply: OutboundReply) -> None:
    if reply.kind is ReplyKind.IGNORED:
        return
    if reply.document is not None:
        await message.answer_document(
            BufferedInputFile(reply.document, filename=reply.document_name or "document"),
            caption=reply.text,
        )
        return
    await message.answer(reply.text)
