"""Error hierarchy for timetable extraction and portal access.

Callers branch on the failure kind instead of message text:

- DateNotFound means the page's visible date window misses every candidate
  day, so fetching a different page may help.
- MalformedRow / MissingClassBlock mean the page does not have the expected
  table shape; retrying the same page is pointless.
- TransientError is retried by the portal client (tenacity); the other
  PortalError kinds are not.
"""


class TimetableError(Exception):
    """Base exception for all timetable errors."""

    pass


class ExtractionError(TimetableError):
    """The page content does not match what the extractor expects."""

    pass


class DateNotFound(ExtractionError):
    """None of the candidate dates appear in the page's date header row."""

    def __init__(self, tried: list[str]) -> None:
        self.tried = list(tried)
        super().__init__(
            "Could not find any of these dates in the timetable header: "
            + ", ".join(self.tried)
        )


class MalformedRow(ExtractionError):
    """A period row is missing its label cell or the target day cell."""

    pass


class MissingClassBlock(ExtractionError):
    """An active day cell lacks the nested class-info block or its fields."""

    pass


class PortalError(TimetableError):
    """Base exception for failures talking to the portal."""

    pass


class TransientError(PortalError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, connection resets, 5xx responses.
    """

    pass


class AuthenticationError(PortalError):
    """The portal rejected the login (invalid credentials)."""

    pass


class DailyLinkNotFound(PortalError):
    """The timetable landing page has no link to the daily view."""

    pass
