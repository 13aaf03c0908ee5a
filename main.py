"""
main.py — process entry point for the Telegram front-end.

  setup_logging()   stdout + DATA_DIR/service.log
  run()             database → provider warm-up → polling until SIGINT/SIGTERM
"""
import asyncio
import logging
import signal
import sys
from pathlib import Path

import config

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    data_dir = Path(config.DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(data_dir / "service.log"), encoding="utf-8"),
        ],
    )
    # PTB long-polling logs every getUpdates request at INFO
    for noisy in ("httpx", "httpcore", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def _warm_up_providers() -> None:
    """Build the provider cache once so missing keys show up in the startup log."""
    from errors import ApiKeyMissing
    from providers.manager import get_providers

    try:
        providers = await get_providers()
    except ApiKeyMissing as exc:
        logger.warning("No vision provider available yet (%s). Use /setkey.", exc)
        return
    logger.info("Vision providers: %s (mode %s)", ", ".join(sorted(providers)), config.VISION_MODE)


async def run() -> None:
    import database as db
    from bot import build_application

    try:
        await db.init_db()
    except Exception:
        logger.critical("Database init failed at %s", db.DB_PATH, exc_info=True)
        raise
    logger.info("Database ready at %s", db.DB_PATH)

    await _warm_up_providers()
    application = build_application()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows
            pass

    async with application:
        await application.start()
        await application.updater.start_polling(
            allowed_updates=["message", "callback_query"],
            drop_pending_updates=True,
        )
        logger.info("Resell photo analyzer is running. Press Ctrl+C to stop.")

        await stop_event.wait()

        logger.info("Shutting down…")
        await application.updater.stop()
        await application.stop()


def main() -> None:
    setup_logging()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
