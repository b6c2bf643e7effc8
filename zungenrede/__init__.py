"""
zungenrede-bot: Telegram translation memory with an allowlist gate.
"""

__version__ = "0.1.0"
