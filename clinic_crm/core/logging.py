import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger

from ..config import get_settings


def setup_logging(level: int = logging.INFO):
    """Structured logging setup: structlog on top of stdlib logging."""
    settings = get_settings()
    use_json = settings.log_json or settings.is_production

    json_formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    # Avoid stacking handlers when the app is re-created (tests, reload)
    for handler in list(root.handlers):
        if getattr(handler, "_clinic_crm", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(json_formatter)
    else:
        handler.setFormatter(logging.Formatter('%(levelname)-8s %(name)s: %(message)s'))
    handler._clinic_crm = True
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if settings.debug else level)

    return structlog.get_logger()
