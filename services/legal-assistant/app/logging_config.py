import logging
import sys

import structlog
from structlog.contextvars import clear_contextvars
from structlog.typing import EventDict, Processor


def _service_name(service: str) -> Processor:
    def processor(logger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(level: str, service: str) -> None:
    """
    Configure structured JSON logging for the assistant service.

    Request-scoped metadata (request_id, tenant_id, user_id) is bound through
    contextvars by the middleware and the auth dependency, so pipeline modules
    only log the event name and their own fields.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
        force=True,
    )
    # httpx logs every request at INFO; the assistant client logs its own timing.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _service_name(service),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level)
        ),
        cache_logger_on_first_use=True,
    )
    clear_contextvars()
