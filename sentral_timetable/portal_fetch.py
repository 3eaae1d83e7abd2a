"""
Fetch the daily timetable page from a Sentral portal over HTTP.

Workflow:
1. Make up a random PortalSID cookie and log in with it (JSON POST)
2. Open "My Timetable" and find the id of the daily view
3. Fetch the daily page and extract the next school day from it
4. Extract the previous school day from the same page; if its date has
   scrolled out of the page's window, fetch the page before (id - 1)
"""
from __future__ import annotations

import secrets
import string
from datetime import date
from typing import Callable, Dict, Iterable, Optional, Tuple

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .errors import AuthenticationError, DateNotFound, PortalError, TransientError
from .logging import get_logger
from .models import Day
from .timetable_html import DAYS_PER_BLOCK, ROWS_PER_BLOCK, extract_day, find_daily_timetable_id

log = get_logger(__name__)


# ──────────────────────────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────────────────────────

LOGIN_PATH = "/portal2/user"
TIMETABLE_PATH = "/portal/timetable/mytimetable/"
DAILY_PATH = "/portal/timetable/mytimetable/{timetable_id}/daily"

SID_COOKIE = "PortalSID"
SID_LENGTH = 100
_SID_ALPHABET = string.ascii_letters + string.digits


# ──────────────────────────────────────────────────────────────────
#  Helpers
# ──────────────────────────────────────────────────────────────────

def _new_portal_sid() -> str:
    return "".join(secrets.choice(_SID_ALPHABET) for _ in range(SID_LENGTH))


def _login_body(username: str, password: str) -> Dict[str, str]:
    return {
        "action": "login",
        "password": password,
        "username": username,
        "remember_username": "false",
    }


# ──────────────────────────────────────────────────────────────────
#  Portal client
# ──────────────────────────────────────────────────────────────────

class PortalClient:
    """Logged-in HTTP access to one Sentral portal.

    Network errors, timeouts and 5xx responses are retried; anything else
    surfaces immediately as a PortalError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_wait: float = 2.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

        self.portal_sid = _new_portal_sid()
        self.session.cookies.set(SID_COOKIE, self.portal_sid)

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (
            requests.Timeout,
            requests.ConnectionError,
            requests.exceptions.ChunkedEncodingError,
        ) as e:
            log.warning("portal_request_failed", method=method, url=url, error=str(e))
            raise TransientError(f"{method} {url} failed: {e}") from e
        except requests.RequestException as e:
            # bad portal URL, redirect loops, undecodable bodies
            log.error("portal_request_error", method=method, url=url, error=str(e))
            raise PortalError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 500:
            log.warning("portal_server_error", method=method, url=url, status=response.status_code)
            raise TransientError(f"{method} {url} returned HTTP {response.status_code}")
        return response

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        retrying = Retrying(
            retry=retry_if_exception_type(TransientError),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_fixed(self.retry_wait),
            reraise=True,
        )
        return retrying(self._send, method, f"{self.base_url}{path}", **kwargs)

    def _get_text(self, path: str) -> str:
        response = self._request("GET", path)
        if response.status_code != 200:
            raise PortalError(f"GET {path} returned HTTP {response.status_code}")
        return response.text

    def login(self, username: str, password: str) -> None:
        """Authenticate the PortalSID cookie with the portal.

        :raises AuthenticationError: if the portal rejects the credentials.
        """
        log.info("portal_login", url=self.base_url, user=username)
        response = self._request("POST", LOGIN_PATH, json=_login_body(username, password))
        if response.status_code != 200:
            raise AuthenticationError(
                f"Portal login failed (HTTP {response.status_code}). "
                "Check the username and password."
            )
        log.info("portal_login_ok", user=username)

    def fetch_timetable_id(self) -> int:
        """Read the daily timetable id from the "My Timetable" page."""
        timetable_id = find_daily_timetable_id(self._get_text(TIMETABLE_PATH))
        log.debug("timetable_id_found", timetable_id=timetable_id)
        return timetable_id

    def fetch_daily(self, timetable_id: int) -> str:
        """Return the HTML of the daily timetable page with the given id."""
        html = self._get_text(DAILY_PATH.format(timetable_id=timetable_id))
        log.debug("daily_page_fetched", timetable_id=timetable_id, size=len(html))
        return html


# ──────────────────────────────────────────────────────────────────
#  Next / previous day composition
# ──────────────────────────────────────────────────────────────────

def extract_with_fallback(
    html: str,
    offsets: Iterable[int],
    today: date,
    fallback: Optional[Callable[[], str]] = None,
    *,
    days_per_block: int = DAYS_PER_BLOCK,
    rows_per_block: int = ROWS_PER_BLOCK,
) -> Day:
    """
    Extract a day from ``html``; if none of its dates are on that page,
    extract from the page returned by ``fallback()`` instead.

    Only DateNotFound triggers the fallback. Any error from the fallback
    page propagates.
    """
    offsets = list(offsets)
    try:
        return extract_day(
            html, offsets, today,
            days_per_block=days_per_block, rows_per_block=rows_per_block,
        )
    except DateNotFound as e:
        if fallback is None:
            raise
        log.info("previous_day_fallback", tried=e.tried)

    return extract_day(
        fallback(), offsets, today,
        days_per_block=days_per_block, rows_per_block=rows_per_block,
    )


def fetch_comparison(
    client: PortalClient,
    today: date,
    *,
    next_offsets: Iterable[int] = (1, 2, 3),
    previous_offsets: Iterable[int] = (0, -1, -2, -3),
    days_per_block: int = DAYS_PER_BLOCK,
    rows_per_block: int = ROWS_PER_BLOCK,
) -> Tuple[Day, Day]:
    """
    Fetch and extract the next and previous school days.

    The client must be logged in.

    :returns: ``(next_day, previous_day)``
    """
    timetable_id = client.fetch_timetable_id()
    html = client.fetch_daily(timetable_id)

    next_day = extract_day(
        html, next_offsets, today,
        days_per_block=days_per_block, rows_per_block=rows_per_block,
    )
    previous_day = extract_with_fallback(
        html,
        previous_offsets,
        today,
        lambda: client.fetch_daily(timetable_id - 1),
        days_per_block=days_per_block,
        rows_per_block=rows_per_block,
    )
    return next_day, previous_day
