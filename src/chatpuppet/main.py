"""Demo runner: starts a MockPuppet, logs every event, stops on SIGINT/SIGTERM."""

import asyncio
import logging
import signal
from logging.handlers import RotatingFileHandler

from config.settings import settings

# ── Logging ────────────────────────────────────────────────


def setup_logging() -> None:
    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    level = logging.getLevelName(settings.log_level.upper())

    # File handler
    fh = RotatingFileHandler(
        log_dir / "chatpuppet.log",
        maxBytes=settings.log_file_max_bytes,
        backupCount=settings.log_file_backup_count,
        encoding="utf-8",
    )
    fh.setFormatter(formatter)
    fh.setLevel(level)

    # Console handler
    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    ch.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(fh)
    root.addHandler(ch)

    # The watchdog re-adds its job on every feed
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


# ── Main ───────────────────────────────────────────────────


async def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)

    from chatpuppet.models.events import PuppetEvent
    from chatpuppet.models.options import PuppetOptions
    from chatpuppet.platforms.mock_puppet import MockPuppet

    puppet = MockPuppet(PuppetOptions(name=settings.demo_puppet_name))
    for kind in PuppetEvent:
        puppet.on(kind, lambda event: logger.info("event %s: %r", event.kind.value, event))

    await puppet.start()
    logger.info("%s is running! Press Ctrl+C to stop.", puppet.name)

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    await stop_event.wait()

    logger.info("Shutting down...")
    await puppet.stop()
    logger.info("Goodbye!")


if __name__ == "__main__":
    asyncio.run(main())
