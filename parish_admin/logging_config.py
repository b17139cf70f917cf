"""Logging setup: one stdout handler whose format includes the controller section."""

import logging
import sys

from parish_admin.config import settings


class SectionFormatter(logging.Formatter):
    """Formatter that tolerates records without a ``section`` attribute."""

    def format(self, record):
        if not hasattr(record, "section"):
            record.section = "-"
        return super().format(record)


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(SectionFormatter(
        "%(asctime)s %(levelname)s %(name)s [section=%(section)s] - %(message)s"
    ))
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        handlers=[handler],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
