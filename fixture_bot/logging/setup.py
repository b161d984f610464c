import sys
import logging
from typing import Any

from loguru import logger

from fixture_bot.config.settings import settings

SENSITIVE_KEYS = ["key", "token", "password", "secret", "api_key"]


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:4] + "****" + value[-4:]
    return "********"


def sensitive_data_filter(record: dict[str, Any]) -> bool:
    """Filter function to mask sensitive data in log records."""

    # Mask values bound through logger.bind(...) / extra kwargs
    extra = record.get("extra")
    if isinstance(extra, dict):
        for extra_key, extra_value in extra.items():
            if any(sk in extra_key.lower() for sk in SENSITIVE_KEYS) and isinstance(
                extra_value, str
            ):
                extra[extra_key] = _mask(extra_value)

    # Replace known secrets if they ever end up in a message
    secrets = [
        settings.supabase_key,
        settings.supabase_service_key,
        settings.serpapi_api_key,
        settings.openrouter_api_key,
    ]
    for secret in secrets:
        if secret and secret in record["message"]:
            record["message"] = record["message"].replace(secret, "********")

    return True  # Keep the record after masking


def setup_logging() -> None:
    """Configures Loguru logger based on application settings."""
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=False,  # Locals may hold API keys
        filter=sensitive_data_filter,
    )

    logger.info(f"Logging initialized with level: {settings.log_level}")

    # Intercept standard logging messages (httpx, supabase, postgrest)
    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            # Find caller from where originated the logged message
            frame, depth = logging.currentframe(), 2
            while frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(
                level, record.getMessage()
            )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # httpx logs every request URL at INFO, including the api_key query param
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("Standard logging intercepted.")
