from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from .errors import RecencyCheckError
from .models import CheckResult

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(minutes=10)

# An unreadable timestamp must never stall the batch.
SKIP_ON_UNKNOWN = False


def check_modified_recently(
    read_last_modified: Callable[[], datetime],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> CheckResult[bool]:
    """Report whether the backing file changed within ``window`` of ``now``."""

    try:
        last_modified = read_last_modified()
    except Exception as exc:
        return CheckResult(error=RecencyCheckError(f"Error checking modification time: {exc}"))

    try:
        recent = last_modified > now - window
    except TypeError as exc:  # naive vs aware datetimes
        return CheckResult(error=RecencyCheckError(str(exc)))

    if recent:
        LOGGER.info(
            "Sheet was last modified at %s, which is within the last %s",
            last_modified.isoformat(),
            window,
        )
    return CheckResult(value=recent)


def should_skip_run(
    read_last_modified: Callable[[], datetime],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> bool:
    result = check_modified_recently(read_last_modified, now, window)
    if not result.ok:
        LOGGER.warning("%s; processing anyway", result.error)
    return result.value_or(SKIP_ON_UNKNOWN)
