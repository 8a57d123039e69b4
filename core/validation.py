"""Application startup validation checks.

Validates critical settings before the application starts serving requests.
Settings classes define data, this module validates behavior.
"""

import logging
import re

logger = logging.getLogger(__name__)


def validate_all_settings() -> None:
    """Validate all critical settings at application startup.

    Raises:
        RuntimeError: If any critical setting is missing or invalid
    """
    from core.settings import app_settings, converter_settings, proxy_settings

    url_pattern = re.compile(r"^https?://.+")
    url_checks = [
        (proxy_settings.REMOTE_API_BASE, "REMOTE_API_BASE"),
        (converter_settings.PROXY_BASE_URL, "PROXY_BASE_URL"),
    ]

    invalid_urls = []
    for url, name in url_checks:
        if not url or not url_pattern.match(url):
            invalid_urls.append(
                f"  - {name}={url!r} (must start with http:// or https://)"
            )

    if invalid_urls:
        error_msg = "Invalid URL formats:\n" + "\n".join(invalid_urls)
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if converter_settings.POLL_INTERVAL_SECONDS < 0:
        raise RuntimeError(
            "POLL_INTERVAL_SECONDS must be >= 0, "
            f"got {converter_settings.POLL_INTERVAL_SECONDS}"
        )

    if converter_settings.POLL_MAX_ATTEMPTS < 1:
        raise RuntimeError(
            f"POLL_MAX_ATTEMPTS must be >= 1, got {converter_settings.POLL_MAX_ATTEMPTS}"
        )

    if proxy_settings.PROXY_TIMEOUT_SECONDS <= 0:
        raise RuntimeError(
            "PROXY_TIMEOUT_SECONDS must be > 0, "
            f"got {proxy_settings.PROXY_TIMEOUT_SECONDS}"
        )

    logger.info("All critical settings validated successfully")
    logger.info(f"  - Remote API: {proxy_settings.REMOTE_API_BASE}")
    logger.info(f"  - Proxy (client side): {converter_settings.PROXY_BASE_URL}")
    logger.info(
        f"  - Polling: every {converter_settings.POLL_INTERVAL_SECONDS}s, "
        f"{converter_settings.POLL_MAX_ATTEMPTS} attempts "
        f"({converter_settings.poll_deadline_seconds:g}s deadline)"
    )
    logger.info(f"  - Log level: {app_settings.LOG_LEVEL}")
