import logging
import re
from datetime import date, datetime
from typing import Optional

from smartstay.models.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_STAY_NIGHTS = 30


class QueryValidator:
    """Validates and sanitizes free text sent to the vendors"""

    MAX_QUERY_LENGTH = 1000

    # Dangerous patterns to block
    BLOCKED_PATTERNS = [
        r'<script',
        r'javascript:',
        r'onerror=',
        r'onclick=',
        r'eval\(',
        r'exec\(',
        r'__import__',
    ]

    @staticmethod
    def sanitize_query(query: Optional[str], field: str = "query") -> str:
        """Sanitize a free-text query"""
        if not query or not query.strip():
            raise ValidationError(f"{field} is required")

        if len(query) > QueryValidator.MAX_QUERY_LENGTH:
            raise ValidationError(
                f"{field} too long (max {QueryValidator.MAX_QUERY_LENGTH} characters)"
            )

        for pattern in QueryValidator.BLOCKED_PATTERNS:
            if re.search(pattern, query, re.IGNORECASE):
                logger.warning("Blocked %s pattern: %s", field, pattern)
                raise ValidationError(f"{field} contains potentially malicious content")

        # Strip and normalize whitespace
        return ' '.join(query.split())

    @staticmethod
    def require(value, field: str) -> str:
        """Non-empty identifier check, run before any network call"""
        if value is None or not str(value).strip():
            raise ValidationError(f"{field} is required")
        return str(value).strip()


def parse_iso_date(value: str, field: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", detail=value)


def validate_date_range(checkin: str, checkout: str, today: Optional[date] = None) -> bool:
    """Check-in not in the past, check-out after check-in, at most 30 nights."""
    today = today or date.today()
    checkin_date = parse_iso_date(checkin, "checkin")
    checkout_date = parse_iso_date(checkout, "checkout")

    if checkin_date < today:
        raise ValidationError("Check-in date cannot be in the past")

    if checkout_date <= checkin_date:
        raise ValidationError("Check-out date must be after check-in date")

    if (checkout_date - checkin_date).days > MAX_STAY_NIGHTS:
        raise ValidationError(f"Stay duration cannot exceed {MAX_STAY_NIGHTS} nights")

    return True
