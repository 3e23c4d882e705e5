"""
Date parsing utilities for RegHound.

Timestamps come back from the orchestration web service as OData Edm.DateTime
strings, which may carry up to seven fractional digits and no timezone.
"""

import re
from datetime import datetime, timezone
from typing import Optional

_FRACTION = re.compile(r"\.(\d+)")


def parse_iso_date(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse ISO 8601 date strings with various formats.
    Handles 'Z' suffix, timezone offsets, missing timezones and fractions
    longer than microseconds.
    Always returns timezone-aware datetime (UTC if not specified).
    """
    if not date_str:
        return None

    clean_str = date_str.strip()
    if clean_str.endswith("Z"):
        clean_str = clean_str[:-1] + "+00:00"

    # fromisoformat() before 3.11 accepts only 3 or 6 fractional digits
    clean_str = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), clean_str, count=1)

    try:
        dt = datetime.fromisoformat(clean_str)
    except (ValueError, TypeError):
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
