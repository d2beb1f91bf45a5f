"""
treasurehunt/core/time.py

Audit event timestamps: YYYY-MM-DDTHH:MM:SS.mmmZ
(milliseconds, explicit Z, no +00:00, no microseconds)
"""

import re
from datetime import datetime, timezone

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def event_timestamp() -> str:
    """Current UTC time in audit wire format."""
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
