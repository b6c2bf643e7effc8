"""
Command parsing.

Inbound text is classified into a closed set of command types. Every type is
listed in COMMAND_TYPES; the dispatcher keeps one handler per type.

Grammar (leading "/" and "@botname" suffix optional, command word
case-insensitive):

    lookup <src> <tgt> <key...>
    add    <src> <tgt> <key> <value...>
    add    <src> <tgt> <key...> = <value...>
    remove <src> <tgt> <key...>          (alias: delete)
    list   [<src> <tgt>]
    help | start
    export
    clear

Anything else is Unknown. A command addressed to another bot
("/add@otherbot ...") is Unknown(addressed=False) and gets no reply.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from zungenrede.core.exceptions import InvalidCommand
from zungenrede.storage.models import LanguagePair, normalize_key


@dataclass(frozen=True)
class Lookup:
    language_pair: LanguagePair
    key: str


@dataclass(frozen=True)
class Add:
    language_pair: LanguagePair
    key: str
    value: str


@dataclass(frozen=True)
class Remove:
    language_pair: LanguagePair
    key: str


@dataclass(frozen=True)
class ListEntries:
    language_pair: Optional[LanguagePair] = None


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Export:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Unknown:
    name: str = ""
    # False for "/cmd@otherbot": addressed to another bot in the same chat
    addressed: bool = True


Command = Union[Lookup, Add, Remove, ListEntries, Help, Export, Clear, Unknown]

COMMAND_TYPES: Tuple[type, ...] = (Lookup, Add, Remove, ListEntries, Help, Export, Clear, Unknown)

# Always go through the access gate
MUTATING_COMMANDS: Tuple[type, ...] = (Add, Remove, Clear)

# Gated only when reads are restricted
READ_COMMANDS: Tuple[type, ...] = (Lookup, ListEntries, Export)


def parse_command(raw_text: Optional[str], bot_username: Optional[str] = None) -> Command:
    """
    Classify inbound text.

    Args:
        raw_text: Message text
        bot_username: This bot's username; "/cmd@name" with any other name is
            Unknown(addressed=False). When None, every mention is accepted.

    Raises:
        InvalidCommand: If a known command has malformed arguments
    """
    tokens = (raw_text or "").split()
    if not tokens:
        return Unknown()

    name = tokens[0]
    if not name.startswith("/") and name.lower() not in _PARSERS:
        # plain text, not a command
        return Unknown()
    name, _, mention = name.lstrip("/").partition("@")
    name = name.lower()

    if mention and bot_username and mention.lower() != bot_username.lstrip("@").lower():
        return Unknown(name, addressed=False)

    parser = _PARSERS.get(name)
    if parser is None:
        return Unknown(name)
    return parser(tokens[1:])


def _parse_pair(args: List[str]) -> LanguagePair:
    try:
        return LanguagePair.parse(args[0], args[1])
    except ValueError as e:
        raise InvalidCommand("usage.language_pair", str(e)) from None


def _parse_lookup(args: List[str]) -> Lookup:
    if len(args) < 3:
        raise InvalidCommand("usage.lookup", f"expected at least 3 arguments, got {len(args)}")
    return Lookup(language_pair=_parse_pair(args), key=_key(args[2:], "usage.lookup"))


def _parse_add(args: List[str]) -> Add:
    if len(args) < 4:
        raise InvalidCommand("usage.add", f"expected at least 4 arguments, got {len(args)}")
    language_pair = _parse_pair(args)
    rest = args[2:]
    # only a standalone "=" separates a phrase from its translation; "a=b" is a word
    if "=" in rest:
        separator = rest.index("=")
        key_words, value_words = rest[:separator], rest[separator + 1:]
    else:
        key_words, value_words = rest[:1], rest[1:]
    value = " ".join(value_words).strip()
    if not value:
        raise InvalidCommand("usage.add", "empty translation")
    return Add(language_pair=language_pair, key=_key(key_words, "usage.add"), value=value)


def _parse_remove(args: List[str]) -> Remove:
    if len(args) < 3:
        raise InvalidCommand("usage.remove", f"expected at least 3 arguments, got {len(args)}")
    return Remove(language_pair=_parse_pair(args), key=_key(args[2:], "usage.remove"))


def _parse_list(args: List[str]) -> ListEntries:
    if not args:
        return ListEntries()
    if len(args) != 2:
        raise InvalidCommand("usage.list", f"expected 0 or 2 arguments, got {len(args)}")
    return ListEntries(language_pair=_parse_pair(args))


def _no_arguments(command_type):
    def parse(args: List[str]):
        if args:
            raise InvalidCommand("usage.no_arguments", f"unexpected arguments: {len(args)}")
        return command_type()
    return parse


def _key(words: List[str], usage_key: str) -> str:
    key = normalize_key(" ".join(words))
    if not key:
        raise InvalidCommand(usage_key, "empty key")
    return key


_PARSERS = {
    "lookup": _parse_lookup,
    "add": _parse_add,
    "remove": _parse_remove,
    "delete": _parse_remove,
    "list": _parse_list,
    "help": _no_arguments(Help),
    # deep links arrive as "/start <payload>"
    "start": lambda args: Help(),
    "export": _no_arguments(Export),
    "clear": _no_arguments(Clear),
}
