# -*- coding: utf-8 -*-
"""Russian (ru) strings."""

LANG = {
    "reply.help": (
        "📖 Словарь переводов\n\n"
        "/lookup <src> <tgt> <слово> — найти перевод\n"
        "/add <src> <tgt> <слово> <перевод> — сохранить перевод\n"
        "/add <src> <tgt> <фраза> = <перевод> — сохранить фразу\n"
        "/remove <src> <tgt> <слово> — удалить перевод\n"
        "/list [<src> <tgt>] — показать сохранённые переводы\n"
        "/export — скачать базу переводов\n"
        "/clear — удалить все переводы\n\n"
        "Языки задаются кодами из 2-3 букв, например /add de ru Hund собака"
    ),
    "reply.unknown": "Неизвестная команда. Отправьте /help, чтобы увидеть список команд.",
    "reply.denied": "Извините, у вас нет доступа к этому боту.",
    "reply.error": "⚠️ Произошла ошибка. Попробуйте позже.",
    "reply.not_found": "Перевод не найден.",
    "reply.lookup": "[{pair}]\n➡️ {word}\n⬅️ {value}",
    "reply.added": "✅ Сохранено: {word} → {value} ({pair})",
    "reply.removed": "🗑 Удалено: {word} ({pair})",
    "reply.list_empty": "Сохранённых переводов пока нет.",
    "reply.list_header": "📚 Переводы ({count}):",
    "reply.list_item": "• {word} → {value} ({pair})",
    "reply.list_more": "… и ещё {count}",
    "reply.cleared": "База переводов очищена (удалено: {count}).",
    "reply.export_caption": "База переводов: {count} записей",

    "usage.lookup": "Использование: /lookup <src> <tgt> <слово>",
    "usage.add": "Использование: /add <src> <tgt> <слово> <перевод> или /add <src> <tgt> <фраза> = <перевод>",
    "usage.remove": "Использование: /remove <src> <tgt> <слово>",
    "usage.list": "Использование: /list или /list <src> <tgt>",
    "usage.no_arguments": "Эта команда не принимает аргументов.",
    "usage.language_pair": "Неверная языковая пара. Укажите два разных кода из 2-3 букв, например en de.",
}
