# -*- coding: utf-8 -*-
"""English (en) strings."""

LANG = {
    "reply.help": (
        "📖 Translation memory\n\n"
        "/lookup <src> <tgt> <word> — find a translation\n"
        "/add <src> <tgt> <word> <translation> — save a translation\n"
        "/add <src> <tgt> <phrase> = <translation> — save a phrase\n"
        "/remove <src> <tgt> <word> — delete a translation\n"
        "/list [<src> <tgt>] — show saved translations\n"
        "/export — download the translations database\n"
        "/clear — delete all translations\n\n"
        "Languages are 2-3 letter codes, e.g. /add de ru Hund собака"
    ),
    "reply.unknown": "Unknown command. Send /help to see what I can do.",
    "reply.denied": "Sorry, you are not authorized to use this bot.",
    "reply.error": "⚠️ An error occurred. Please try again later.",
    "reply.not_found": "Translation not found.",
    "reply.lookup": "[{pair}]\n➡️ {word}\n⬅️ {value}",
    "reply.added": "✅ Saved: {word} → {value} ({pair})",
    "reply.removed": "🗑 Deleted: {word} ({pair})",
    "reply.list_empty": "No translations saved yet.",
    "reply.list_header": "📚 Translations ({count}):",
    "reply.list_item": "• {word} → {value} ({pair})",
    "reply.list_more": "… and {count} more",
    "reply.cleared": "Translations database has been cleared ({count} removed).",
    "reply.export_caption": "Translation database with {count} entries",

    "usage.lookup": "Usage: /lookup <src> <tgt> <word>",
    "usage.add": "Usage: /add <src> <tgt> <word> <translation> or /add <src> <tgt> <phrase> = <translation>",
    "usage.remove": "Usage: /remove <src> <tgt> <word>",
    "usage.list": "Usage: /list or /list <src> <tgt>",
    "usage.no_arguments": "This command takes no arguments.",
    "usage.language_pair": "Invalid language pair. Use two different 2-3 letter codes, e.g. en de.",
}
