"""
Write a few Stackdriver lines to stdout through structlog.

    SD_LOG_SERVICE_NAME=mylog python examples/simple.py
"""

import structlog

from stackdriver_stream.config import StackdriverSettings, resolve_output
from stackdriver_stream.processors import configure_structlog


def main() -> None:
    settings = StackdriverSettings()
    configure_structlog(
        settings.service_name,
        level=settings.level.value if settings.level else None,
        out=resolve_output(settings.output),
    )
    log = structlog.get_logger()

    log.info("hola que tal")
    log.info("pario a todos", todos="putos", que="los")
    try:
        raise RuntimeError("esto esta mal!")
    except RuntimeError:
        log.exception("esto esta mal!")


if __name__ == "__main__":
    main()
