"""
Request Dispatcher

Turns one inbound message into one reply:

    parse → authorize → execute → respond

Each message is an independent transaction; the only shared state is the
translation store (behind TranslationService) and the access gate.

Failure boundary: every per-request error becomes a reply here. Store
failures are logged with detail and answered with a generic error text.
CancelledError is never swallowed.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

from zungenrede.core.exceptions import AccessDenied, InvalidCommand, StoreError
from zungenrede.core.structured_logger import log_event
from zungenrede.dispatcher.commands import (
    COMMAND_TYPES,
    MUTATING_COMMANDS,
    READ_COMMANDS,
    Add,
    Clear,
    Command,
    Export,
    Help,
    ListEntries,
    Lookup,
    Remove,
    Unknown,
    parse_command,
)
from zungenrede.dispatcher.replies import OutboundReply, ReplyKind
from zungenrede.i18n import DEFAULT_LANGUAGE, get_text
from zungenrede.services.access import AccessGate
from zungenrede.services.translations import TranslationService
from zungenrede.storage.models import TranslationEntry

logger = logging.getLogger(__name__)

# Telegram rejects longer text messages
MAX_MESSAGE_LENGTH = 4096

EXPORT_FILE_NAME = "translations_storage.json"


class RequestDispatcher:
    """
    Entry point for the channel adapter: on_message(principal, raw_text).

    Args:
        service: Async translation store facade
        gate: Allowlist check
        restrict_reads: Also gate Lookup/List/Export (mutations are always gated)
        language: Reply language
        list_limit: Maximum entries shown by /list
        bot_username: This bot's username, for ignoring "/cmd@otherbot" in groups
    """

    def __init__(
        self,
        service: TranslationService,
        gate: AccessGate,
        *,
        restrict_reads: bool = False,
        language: str = DEFAULT_LANGUAGE,
        list_limit: int = 50,
        bot_username: Optional[str] = None,
    ):
        self._service = service
        self._gate = gate
        self._restrict_reads = restrict_reads
        self._language = language
        self._list_limit = list_limit
        self._bot_username = bot_username
        self._handlers: Dict[type, Callable[[Command], Awaitable[OutboundReply]]] = {
            Lookup: self._handle_lookup,
            Add: self._handle_add,
            Remove: self._handle_remove,
            ListEntries: self._handle_list,
            Help: self._handle_help,
            Export: self._handle_export,
            Clear: self._handle_clear,
            Unknown: self._handle_unknown,
        }
        missing = set(COMMAND_TYPES) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no handler for command types: {sorted(t.__name__ for t in missing)}")

    @property
    def handled_command_types(self):
        return frozenset(self._handlers)

    def requires_authorization(self, command: Command) -> bool:
        if isinstance(command, MUTATING_COMMANDS):
            return True
        return self._restrict_reads and isinstance(command, READ_COMMANDS)

    async def on_message(self, principal: Optional[int], raw_text: Optional[str]) -> OutboundReply:
        """Process one inbound message and return the reply to send."""
        start_time = time.monotonic()

        try:
            command = parse_command(raw_text, bot_username=self._bot_username)
        except InvalidCommand as e:
            self._log(principal, "parse", "invalid", start_time, reason=e.detail or e.usage_key)
            return self._reply(ReplyKind.INVALID, e.usage_key)

        operation = type(command).__name__.lower()

        if self.requires_authorization(command):
            try:
                self._gate.authorize(principal)
            except AccessDenied:
                self._log(principal, operation, "denied", start_time)
                return self._reply(ReplyKind.DENIED, "reply.denied")

        try:
            reply = await self._handlers[type(command)](command)
        except asyncio.CancelledError:
            self._log(principal, operation, "cancelled", start_time)
            raise
        except StoreError as e:
            self._log(
                principal, operation, "failed", start_time,
                reason=f"{type(e).__name__}: {e}", level="error",
            )
            return self._reply(ReplyKind.ERROR, "reply.error")
        except Exception as e:
            logger.exception("UNEXPECTED_DISPATCH_ERROR operation=%s principal=%s", operation, principal)
            self._log(
                principal, operation, "failed", start_time,
                reason=f"{type(e).__name__}: {str(e)[:200]}", level="error",
            )
            return self._reply(ReplyKind.ERROR, "reply.error")

        self._log(principal, operation, reply.kind.value, start_time)
        return reply

    # ====================================================================================
    # Command handlers
    # ====================================================================================

    async def _handle_lookup(self, command: Lookup) -> OutboundReply:
        entry = await self._service.lookup(command.key, command.language_pair)
        if entry is None:
            return self._reply(ReplyKind.NOT_FOUND, "reply.not_found")
        return self._reply(
            ReplyKind.OK, "reply.lookup",
            pair=entry.language_pair, word=entry.key, value=entry.value,
        )

    async def _handle_add(self, command: Add) -> OutboundReply:
        entry = TranslationEntry(key=command.key, value=command.value, language_pair=command.language_pair)
        await self._service.add(entry)
        return self._reply(
            ReplyKind.OK, "reply.added",
            word=entry.key, value=entry.value, pair=entry.language_pair,
        )

    async def _handle_remove(self, command: Remove) -> OutboundReply:
        existed = await self._service.remove(command.key, command.language_pair)
        if not existed:
            return self._reply(ReplyKind.NOT_FOUND, "reply.not_found")
        return self._reply(ReplyKind.OK, "reply.removed", word=command.key, pair=command.language_pair)

    async def _handle_list(self, command: ListEntries) -> OutboundReply:
        entries = await self._service.list_entries(command.language_pair)
        if not entries:
            return self._reply(ReplyKind.OK, "reply.list_empty")

        lines = [get_text(self._language, "reply.list_header", count=len(entries))]
        length = len(lines[0])
        shown = 0
        for entry in entries:
            if shown >= self._list_limit:
                break
            line = get_text(
                self._language, "reply.list_item",
                word=entry.key, value=entry.value, pair=entry.language_pair,
            )
            # reserve room for the "and N more" tail
            if length + len(line) + 64 > MAX_MESSAGE_LENGTH:
                break
            lines.append(line)
            length += len(line) + 1
            shown += 1

        if shown < len(entries):
            lines.append(get_text(self._language, "reply.list_more", count=len(entries) - shown))
        return OutboundReply(kind=ReplyKind.OK, text="\n".join(lines))

    async def _handle_help(self, command: Help) -> OutboundReply:
        return self._reply(ReplyKind.OK, "reply.help")

    async def _handle_export(self, command: Export) -> OutboundReply:
        document, count = await self._service.export()
        return OutboundReply(
            kind=ReplyKind.OK,
            text=get_text(self._language, "reply.export_caption", count=count),
            document=document,
            document_name=EXPORT_FILE_NAME,
        )

    async def _handle_clear(self, command: Clear) -> OutboundReply:
        removed = await self._service.clear()
        return self._reply(ReplyKind.OK, "reply.cleared", count=removed)

    async def _handle_unknown(self, command: Unknown) -> OutboundReply:
        if not command.addressed:
            return OutboundReply(kind=ReplyKind.IGNORED, text="")
        return self._reply(ReplyKind.UNKNOWN, "reply.unknown")

    # ====================================================================================
    # Helpers
    # ====================================================================================

    def _reply(self, kind: ReplyKind, key: str, **kwargs) -> OutboundReply:
        return OutboundReply(kind=kind, text=get_text(self._language, key, **kwargs))

    def _log(
        self,
        principal: Optional[int],
        operation: str,
        outcome: str,
        start_time: float,
        reason: Optional[str] = None,
        level: str = "info",
    ) -> None:
        log_event(
            logger,
            component="dispatcher",
            operation=operation,
            outcome=outcome,
            duration_ms=(time.monotonic() - start_time) * 1000,
            reason=reason,
            level=level,
            message=f"dispatcher {operation} outcome={outcome} principal={principal}",
        )
