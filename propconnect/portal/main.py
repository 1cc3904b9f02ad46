"""PropConnect client - application entry point."""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from propconnect.portal.state import Store
from propconnect.shared.core.configuration import LoggingConfig, SystemConfig, get_config
from propconnect.shared.core.event_bus import EventBus

PROJECT_ROOT = Path(__file__).parent.parent.parent.resolve()

logger = logging.getLogger(__name__)


def configure_logging(config: LoggingConfig) -> Path:
    """Rotating file log at the configured level, WARNING+ on the console.

    Returns:
        Path of the log file
    """
    logs_dir = Path(config.log_dir)
    if not logs_dir.is_absolute():
        logs_dir = PROJECT_ROOT / logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = logs_dir / "propconnect.log"

    file_log_level = getattr(logging, config.level.upper(), logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(file_log_level)
    root_logger.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Suppress verbose third-party library logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("duckdb").setLevel(logging.WARNING)

    logger.info(f"Logging configured: file={log_file_path}, console=WARNING+")
    return log_file_path


async def run(config: Optional[SystemConfig] = None) -> str:
    """Open the store, re-validate any saved session and close again.

    Returns:
        The resulting user type (``guest`` when nothing was restored)
    """
    config = config or get_config()
    bus = EventBus()
    async with await Store.open(config, event_bus=bus) as store:
        await store.auth.restore_session()
        auth = store.state.auth
        logger.info(
            f"Session ready: {auth.user_type.value}, "
            f"{len(store.state.favorites.saved_properties)} saved properties"
        )
        return auth.user_type.value


def main() -> None:
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env")
    config = get_config()
    configure_logging(config.logging)
    user_type = asyncio.run(run(config))
    print(f"PropConnect client ready ({config.api.base_url}) as {user_type}")


if __name__ == "__main__":
    main()
