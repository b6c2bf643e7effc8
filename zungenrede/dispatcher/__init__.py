"""
Request Dispatcher: command parsing, authorization, execution, replies.
"""

from zungenrede.dispatcher.commands import (
    COMMAND_TYPES,
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
from zungenrede.dispatcher.dispatcher import RequestDispatcher
from zungenrede.dispatcher.replies import OutboundReply, ReplyKind

__all__ = [
    "COMMAND_TYPES",
    "Add",
    "Clear",
    "Command",
    "Export",
    "Help",
    "ListEntries",
    "Lookup",
    "Remove",
    "Unknown",
    "parse_command",
    "RequestDispatcher",
    "OutboundReply",
    "ReplyKind",
]
