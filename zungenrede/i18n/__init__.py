# -*- coding: utf-8 -*-
"""
Reply texts.

Language resolution:
- If language not in LANGUAGES → use DEFAULT_LANGUAGE (en)
- If key missing in requested language → fallback to English
- If key missing everywhere → return key (never crash)
"""

import logging

from . import en, ru

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

LANGUAGES = {
    "en": en.LANG,
    "ru": ru.LANG,
}


def get_text(language: str, key: str, **kwargs) -> str:
    """
    Get localized text for key in given language.

    Args:
        language: Language code (en, ru)
        key: Dot-separated key (e.g. reply.denied, usage.add)
        **kwargs: Format placeholders

    Returns:
        Localized string, optionally formatted. Never raises.
    """
    lang_dict = LANGUAGES.get(language, LANGUAGES[DEFAULT_LANGUAGE])
    text = lang_dict.get(key)

    if text is None:
        text = LANGUAGES[DEFAULT_LANGUAGE].get(key)
        if text is None:
            logger.error("I18N missing key in all languages: %s", key)
            return key
        logger.warning("I18N fallback to EN for key=%s, lang=%s", key, language)

    if kwargs:
        return text.format(**kwargs)
    return text


__all__ = ["get_text", "LANGUAGES", "DEFAULT_LANGUAGE"]
