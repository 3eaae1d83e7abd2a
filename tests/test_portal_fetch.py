"""Tests for portal_fetch.py – portal client and next/previous composition."""
from datetime import date
from unittest.mock import Mock

import pytest
import requests

from sentral_timetable.errors import (
    AuthenticationError,
    DailyLinkNotFound,
    DateNotFound,
    PortalError,
    TransientError,
)
from sentral_timetable.portal_fetch import (
    SID_COOKIE,
    PortalClient,
    extract_with_fallback,
    fetch_comparison,
)

from timetable_pages import EARLIER_DATES, HEADER_DATES, build_page, subject_name

BASE_URL = "https://school.sentral.com.au"

LANDING_HTML = """<html><body>
<a href="/portal/timetable/mytimetable/42/daily"><i class="icon-certificate"></i> Daily</a>
</body></html>"""


def _response(status: int = 200, text: str = "") -> Mock:
    response = Mock()
    response.status_code = status
    response.text = text
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def client(session):
    return PortalClient(BASE_URL + "/", session=session, retry_wait=0)


class TestPortalClient:
    def test_portal_sid_cookie(self, client, session):
        assert len(client.portal_sid) == 100
        assert client.portal_sid.isalnum()
        session.cookies.set.assert_called_once_with(SID_COOKIE, client.portal_sid)

    def test_new_sid_per_client(self, session):
        a = PortalClient(BASE_URL, session=session)
        b = PortalClient(BASE_URL, session=session)
        assert a.portal_sid != b.portal_sid

    def test_login(self, client, session):
        session.request.return_value = _response(200)
        client.login("jsmith", "hunter2")
        session.request.assert_called_once_with(
            "POST",
            f"{BASE_URL}/portal2/user",
            timeout=30.0,
            json={
                "action": "login",
                "password": "hunter2",
                "username": "jsmith",
                "remember_username": "false",
            },
        )

    def test_login_rejected(self, client, session):
        session.request.return_value = _response(401)
        with pytest.raises(AuthenticationError):
            client.login("jsmith", "wrong")

    def test_retries_connection_errors(self, client, session):
        session.request.side_effect = [
            requests.ConnectionError("reset"),
            requests.Timeout("slow"),
            _response(200),
        ]
        client.login("jsmith", "hunter2")
        assert session.request.call_count == 3

    def test_gives_up_after_retry_attempts(self, client, session):
        session.request.return_value = _response(503)
        with pytest.raises(TransientError):
            client.fetch_daily(42)
        assert session.request.call_count == 3

    def test_client_errors_are_not_retried(self, client, session):
        session.request.return_value = _response(404)
        with pytest.raises(PortalError):
            client.fetch_daily(42)
        assert session.request.call_count == 1

    def test_broken_response_body_is_retried(self, client, session):
        session.request.side_effect = [
            requests.exceptions.ChunkedEncodingError("broken"),
            _response(200, "<html>daily</html>"),
        ]
        assert client.fetch_daily(42) == "<html>daily</html>"
        assert session.request.call_count == 2

    def test_broken_response_body_gives_up(self, client, session):
        session.request.side_effect = requests.exceptions.ChunkedEncodingError("broken")
        with pytest.raises(TransientError):
            client.fetch_daily(42)
        assert session.request.call_count == 3

    def test_other_request_errors_become_portal_errors(self, client, session):
        session.request.side_effect = requests.exceptions.TooManyRedirects("loop")
        with pytest.raises(PortalError) as exc_info:
            client.fetch_daily(42)
        assert not isinstance(exc_info.value, TransientError)
        assert isinstance(exc_info.value.__cause__, requests.exceptions.TooManyRedirects)
        assert session.request.call_count == 1

    def test_url_without_scheme(self):
        client = PortalClient("school.sentral.com.au", retry_wait=0)
        with pytest.raises(PortalError, match="school.sentral.com.au/portal2/user"):
            client.login("jsmith", "hunter2")

    def test_fetch_timetable_id(self, client, session):
        session.request.return_value = _response(200, LANDING_HTML)
        assert client.fetch_timetable_id() == 42
        session.request.assert_called_once_with(
            "GET", f"{BASE_URL}/portal/timetable/mytimetable/", timeout=30.0
        )

    def test_fetch_timetable_id_without_link(self, client, session):
        session.request.return_value = _response(200, "<html></html>")
        with pytest.raises(DailyLinkNotFound):
            client.fetch_timetable_id()

    def test_fetch_daily(self, client, session):
        session.request.return_value = _response(200, "<html>daily</html>")
        assert client.fetch_daily(7) == "<html>daily</html>"
        session.request.assert_called_once_with(
            "GET", f"{BASE_URL}/portal/timetable/mytimetable/7/daily", timeout=30.0
        )


class TestExtractWithFallback:
    def test_uses_first_page_when_possible(self):
        fallback = Mock()
        day = extract_with_fallback(build_page(), [0, -1], date(2024, 3, 6), fallback)
        assert day.date == "06/03/2024"
        fallback.assert_not_called()

    def test_falls_back_when_date_missing(self):
        fallback = Mock(return_value=build_page(dates=EARLIER_DATES))
        day = extract_with_fallback(build_page(), [0, -1, -2, -3], date(2024, 3, 3), fallback)
        assert day.date == "02/03/2024"
        assert day.weekday == "Saturday"
        fallback.assert_called_once_with()

    def test_without_fallback(self):
        with pytest.raises(DateNotFound):
            extract_with_fallback(build_page(), [0], date(2024, 3, 3))

    def test_fallback_failure_propagates(self):
        fallback = Mock(return_value=build_page())
        with pytest.raises(DateNotFound):
            extract_with_fallback(build_page(), [0], date(2023, 1, 1), fallback)


class TestFetchComparison:
    def _client(self, pages):
        client = Mock(spec=PortalClient)
        client.fetch_timetable_id.return_value = 42
        client.fetch_daily.side_effect = lambda timetable_id: pages[timetable_id]
        return client

    def test_both_days_on_one_page(self):
        client = self._client({42: build_page()})
        next_day, prev_day = fetch_comparison(client, date(2024, 3, 13))
        assert next_day.date == "14/03/2024"
        assert prev_day.date == "13/03/2024"
        assert next_day.periods[0].subject == subject_name(1, 1, 2)
        assert prev_day.periods[0].subject == subject_name(1, 1, 1)
        client.fetch_daily.assert_called_once_with(42)

    def test_previous_day_from_earlier_page(self):
        # Monday 04/03: the next day is on page 42, the previous school day
        # (Saturday 02/03 in this made-up window) only on page 41
        client = self._client({
            42: build_page(dates=HEADER_DATES),
            41: build_page(dates=EARLIER_DATES),
        })
        next_day, prev_day = fetch_comparison(client, date(2024, 3, 4))
        assert next_day.date == "05/03/2024"
        assert prev_day.date == "02/03/2024"
        assert [c.args for c in client.fetch_daily.call_args_list] == [(42,), (41,)]

    def test_next_day_missing_is_not_retried(self):
        client = self._client({42: build_page()})
        with pytest.raises(DateNotFound):
            fetch_comparison(client, date(2024, 3, 16), next_offsets=[1, 2, 3])
        client.fetch_daily.assert_called_once_with(42)
