"""
Translation Service Layer

Async access to the translation store for handlers and the dispatcher.
"""

from zungenrede.services.translations.service import TranslationService

__all__ = ["TranslationService"]
