"""Time source injected into everything that needs "now"."""

from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo


class Clock:
    """Wall clock bound to the restaurant's local timezone.

    Services and formatters receive a Clock instead of calling
    ``datetime.now`` themselves, so tests can pin the current time.
    """

    def __init__(self, timezone: str = "UTC") -> None:
        """Initialize the clock.

        Args:
            timezone: IANA timezone name used for "today" boundaries
        """
        self.timezone = ZoneInfo(timezone)

    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        return datetime.now(UTC)

    def local_midnight(self) -> datetime:
        """Start of the current local day, expressed in UTC."""
        local_now = self.now().astimezone(self.timezone)
        midnight = datetime.combine(local_now.date(), time.min, tzinfo=self.timezone)
        return midnight.astimezone(UTC)
