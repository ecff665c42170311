"""Tests for the HTTP stats client, using a stand-in session."""
import pytest
import requests

from errors import BadStatusError, BodyReadError, FetchError
from metrics.stats_client import StatsClient

URL = "http://stats.test/_stats"


class FakeResponse:
    def __init__(self, status_code=200, text="", reason="OK", read_error=None):
        self.status_code = status_code
        self.reason = reason
        self._text = text
        self._read_error = read_error
        self.closed = False

    @property
    def text(self):
        if self._read_error:
            raise self._read_error
        return self._text

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_fetch_returns_body_and_passes_timeout():
    session = FakeSession(FakeResponse(text="1,2,3,4,5,6,7\n"))
    client = StatsClient(URL, timeout=12, session=session)

    assert client.fetch() == "1,2,3,4,5,6,7\n"
    url, kwargs = session.calls[0]
    assert url == URL
    assert kwargs["timeout"] == 12
    assert session.response.closed


@pytest.mark.parametrize("error", [
    requests.ConnectionError("refused"),
    requests.Timeout("timed out"),
    requests.exceptions.InvalidURL("bad url"),
])
def test_transport_failures_raise_fetch_error(error):
    client = StatsClient(URL, timeout=1, session=FakeSession(error=error))
    with pytest.raises(FetchError) as excinfo:
        client.fetch()
    assert excinfo.value.__cause__ is error


@pytest.mark.parametrize("status", [201, 204, 404, 500, 503])
def test_non_ok_status_raises_bad_status(status):
    response = FakeResponse(status_code=status, reason="Nope", text="1,2,3,4,5,6,7")
    client = StatsClient(URL, timeout=1, session=FakeSession(response))
    with pytest.raises(BadStatusError) as excinfo:
        client.fetch()
    assert excinfo.value.status_code == status
    assert isinstance(excinfo.value, FetchError)
    assert response.closed


def test_body_read_failure_raises_body_read_error():
    error = requests.exceptions.ChunkedEncodingError("connection broken")
    client = StatsClient(URL, timeout=1, session=FakeSession(FakeResponse(read_error=error)))
    with pytest.raises(BodyReadError):
        client.fetch()


def test_close_closes_session():
    session = FakeSession()
    StatsClient(URL, timeout=1, session=session).close()
    assert session.closed


def test_default_session_is_created():
    client = StatsClient(URL, timeout=1)
    assert isinstance(client._session, requests.Session)
    client.close()
