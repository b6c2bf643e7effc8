import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Configure logging FIRST (before any other imports that may log)
from zungenrede.core.logging_config import setup_logging
setup_logging()

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramConflictError
from aiogram.types import BotCommand
from aiogram.utils.token import TokenValidationError

import config
import health_server
from zungenrede.core.concurrency_middleware import ConcurrencyLimiterMiddleware
from zungenrede.core.exceptions import ConfigurationError, PersistenceError, StoreError
from zungenrede.core.structured_logger import log_event
from zungenrede.core.telegram_error_middleware import TelegramErrorBoundaryMiddleware
from zungenrede.dispatcher import RequestDispatcher
from zungenrede.handlers import router as root_router
from zungenrede.services.access import AccessGate
from zungenrede.services.translations import TranslationService
from zungenrede.storage import TranslationStore

# ====================================================================================
# STARTUP CONTRACT
#
# 1. Configuration is validated      → ConfigurationError: exit 1
# 2. Single instance per store file  → live pid file: exit 1
# 3. Store is loaded                 → CorruptStoreError, legacy backup failure: exit 1
# 4. Polling starts only after 1-3 succeeded
#
# Shutdown: polling stops, background tasks are cancelled, the store is
# flushed once more, the pid file is removed.
# ====================================================================================

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="lookup", description="find a translation"),
    BotCommand(command="add", description="save a translation"),
    BotCommand(command="remove", description="delete a translation"),
    BotCommand(command="list", description="show saved translations"),
    BotCommand(command="export", description="export translations database"),
    BotCommand(command="clear", description="clear translations database"),
    BotCommand(command="help", description="show help information"),
]


def instance_lock_path(storage_file: Path) -> Path:
    return storage_file.with_name(storage_file.name + ".pid")


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # exists, owned by someone else
        return True
    return True


def acquire_instance_lock(lock_file: Path) -> bool:
    """
    Write our pid to lock_file unless another live process holds it.

    A pid file left by a dead process is replaced.
    """
    if lock_file.exists():
        try:
            other_pid = int(lock_file.read_text().strip())
        except (OSError, ValueError):
            other_pid = None
        if other_pid is not None and other_pid != os.getpid() and _pid_alive(other_pid):
            logger.critical("Another instance (pid=%s) is serving this store. Exiting.", other_pid)
            return False
        logger.warning("Replacing stale instance lock file %s (pid=%s)", lock_file, other_pid)
    try:
        lock_file.write_text(str(os.getpid()))
    except OSError as e:
        logger.warning("Could not create instance lock file: %s", e)
    return True


def release_instance_lock(lock_file: Path) -> None:
    try:
        if lock_file.exists():
            lock_file.unlink()
            logger.info("Instance lock file removed")
    except OSError as e:
        logger.warning("Could not remove instance lock file: %s", e)


def build_dispatcher(
    settings: config.Settings,
    store: TranslationStore,
    bot_username: Optional[str] = None,
) -> Dispatcher:
    """Wire store, gate and request dispatcher into an aiogram Dispatcher."""
    gate = AccessGate(settings.allowed_users)
    request_dispatcher = RequestDispatcher(
        TranslationService(store),
        gate,
        restrict_reads=settings.restrict_reads,
        language=settings.bot_language,
        list_limit=settings.list_limit,
        bot_username=bot_username,
    )

    dp = Dispatcher(request_dispatcher=request_dispatcher)
    # order: 1 ConcurrencyLimiter, 2 TelegramErrorBoundary, 3 Routers
    dp.update.outer_middleware(ConcurrencyLimiterMiddleware(settings.max_concurrent_updates))
    dp.update.middleware(TelegramErrorBoundaryMiddleware(settings.bot_language))
    dp.include_router(root_router)

    if gate.allows_everyone:
        logger.warning("ALLOWED_USERS is empty: every user may modify the translation memory")
    else:
        logger.info("Allowlist loaded: %s users", len(gate.allowed_users))
    logger.info("RESTRICT_READS=%s CONCURRENCY_LIMIT=%s", settings.restrict_reads, settings.max_concurrent_updates)
    return dp


async def main():
    try:
        settings = config.load_settings()
    except ConfigurationError as e:
        logger.critical("CONFIGURATION_ERROR %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        raise SystemExit(1)

    logging.getLogger().setLevel(settings.log_level)
    logger.info("Starting translation bot in %s environment", settings.app_env.upper())
    logger.info("Using STORAGE_FILE=%s", settings.storage_file)

    lock_file = instance_lock_path(settings.storage_file)
    settings.storage_file.parent.mkdir(parents=True, exist_ok=True)
    if not acquire_instance_lock(lock_file):
        raise SystemExit(1)

    bot: Optional[Bot] = None
    background_tasks = []
    try:
        try:
            store = TranslationStore.load(settings.storage_file, legacy_pair=settings.legacy_language_pair)
        except StoreError as e:
            logger.critical("STORE_LOAD_FAILED %s", e)
            print(f"ERROR: {e}", file=sys.stderr)
            raise SystemExit(1)

        try:
            bot = Bot(token=settings.bot_token)
        except TokenValidationError:
            logger.critical("CONFIGURATION_ERROR BOT_TOKEN has an invalid format")
            print("ERROR: BOT_TOKEN has an invalid format", file=sys.stderr)
            raise SystemExit(1)

        bot_username = None
        try:
            bot_username = (await bot.get_me()).username
        except Exception as e:
            logger.warning("Could not fetch bot username, accepting every /cmd@mention: %s", e)

        dp = build_dispatcher(settings, store, bot_username=bot_username)

        if settings.health_server_enabled:
            background_tasks.append(asyncio.create_task(
                health_server.health_server_task(
                    store, host=settings.health_server_host, port=settings.health_server_port,
                )
            ))

        try:
            await bot.set_my_commands(BOT_COMMANDS)
        except Exception as e:
            logger.warning("Could not register bot commands: %s", e)

        log_event(logger, component="polling", operation="polling_start", outcome="success")
        try:
            await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
        except asyncio.CancelledError:
            log_event(logger, component="polling", operation="polling_cancelled", outcome="cancelled")
        except TelegramConflictError:
            log_event(
                logger,
                component="polling",
                operation="conflict",
                outcome="failed",
                reason="another bot instance is polling with this token",
                level="critical",
            )
            raise SystemExit(1)

        log_event(logger, component="shutdown", operation="shutdown_start", outcome="success")
        try:
            await asyncio.to_thread(store.flush)
        except PersistenceError as e:
            logger.error("Final store flush failed: %s", e)
    finally:
        for task in background_tasks:
            if not task.done():
                task.cancel()
        for task in background_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error("Error during shutdown of task %s: %s", task.get_name(), e)

        if bot is not None:
            try:
                await bot.session.close()
                logger.info("Bot session closed")
            except Exception as e:
                logger.debug("Error closing bot session: %s", e)

        release_instance_lock(lock_file)
        log_event(logger, component="shutdown", operation="shutdown_completed", outcome="success")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped")


if __name__ == "__main__":
    run()
