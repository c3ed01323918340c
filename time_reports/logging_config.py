import logging
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

from time_reports.config import LOG_LEVEL, REPORT_TIMEZONE


class ReportTZFormatter(logging.Formatter):
    """Renders log timestamps in the report timezone instead of host time."""

    def __init__(self, fmt=None, datefmt=None, tz_name: str = REPORT_TIMEZONE):
        super().__init__(fmt, datefmt)
        self.tz = ZoneInfo(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        return dt.strftime(datefmt or "%H:%M:%S")


def setup_logging(level: str = LOG_LEVEL):
    formatter = ReportTZFormatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        "%H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
