"""
Last-resort error boundary for update processing.

The dispatcher already converts request errors into replies; this catches
what escapes a handler (mostly Telegram API errors while replying) so a single
update can never stop polling. CancelledError is never swallowed.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

from zungenrede.core.structured_logger import log_event
from zungenrede.i18n import DEFAULT_LANGUAGE, get_text

logger = logging.getLogger(__name__)


class TelegramErrorBoundaryMiddleware(BaseMiddleware):
    """
    TelegramForbiddenError (user blocked the bot) → debug log.
    TelegramBadRequest → warning.
    Anything else → error log, best-effort generic reply.
    """

    def __init__(self, language: str = DEFAULT_LANGUAGE):
        super().__init__()
        self._language = language

    async def __call__(
        self,
        handler: Callable[[Any, Dict[str, Any]], Awaitable[Any]],
        event: Any,
        data: Dict[str, Any],
    ) -> Any:
        try:
            return await handler(event, data)
        except asyncio.CancelledError:
            raise
        except TelegramForbiddenError as e:
            logger.debug("TelegramForbiddenError (user blocked bot): %s", e)
            return None
        except TelegramBadRequest as e:
            logger.warning("TelegramBadRequest: %s", e)
            return None
        except Exception as e:
            message = getattr(event, "message", None)
            correlation_id = getattr(event, "update_id", None)
            log_event(
                logger,
                component="telegram",
                operation="update_processing",
                correlation_id=correlation_id,
                outcome="failed",
                reason=f"{type(e).__name__}: {str(e)[:200]}",
                level="error",
            )
            logger.exception("UNHANDLED_HANDLER_EXCEPTION update_type=%s", type(event).__name__)

            if message is not None and hasattr(message, "answer"):
                try:
                    await message.answer(get_text(self._language, "reply.error"))
                except Exception as reply_error:
                    logger.debug("Could not send error reply: %s", reply_error)
            return None
