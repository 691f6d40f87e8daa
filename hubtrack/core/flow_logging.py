import logging

from hubtrack.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "transit":
        return settings.FLOW_LOGS_TRANSIT_ENABLED
    if category == "kaat":
        return settings.FLOW_LOGS_KAAT_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
