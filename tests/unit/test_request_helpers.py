import base64

import pytest
import requests
import responses
from requests import Session

from clinic_sync import request_helpers
from clinic_sync.errors import TransientTransportError


class CaptureLog:
    def __init__(self):
        self.infos = []
        self.errors = []

    def info(self, msg):
        self.infos.append(msg)

    def error(self, msg):
        self.errors.append(msg)


def test_build_url_various_slashes():
    assert request_helpers.build_url("https://api/", "/v1") == "https://api/v1"
    assert request_helpers.build_url("https://api", "v1") == "https://api/v1"
    assert (
        request_helpers.build_url("https://api/v1", "patients")
        == "https://api/v1/patients"
    )
    assert (
        request_helpers.build_url("https://api/v1/", "/patients")
        == "https://api/v1/patients"
    )


def test_with_query_repeats_list_values_and_skips_none():
    url = request_helpers.with_query(
        "https://api/v1/x", {"q[]": ["a:>=1", "a:<=2"], "page": 1, "skip": None}
    )
    assert url == "https://api/v1/x?q%5B%5D=a%3A%3E%3D1&q%5B%5D=a%3A%3C%3D2&page=1"


def test_with_query_extends_existing_query():
    assert (
        request_helpers.with_query("https://r/x.csv?format=csv", {"a": "b"})
        == "https://r/x.csv?format=csv&a=b"
    )
    assert request_helpers.with_query("https://r/x", {}) == "https://r/x"


def test_basic_auth_header_uses_x_password():
    header = request_helpers.basic_auth_header("MS0xMjM0")
    assert header.startswith("Basic ")
    assert base64.b64decode(header[6:]).decode() == "MS0xMjM0:x"


def test_build_session_mounts_adapters_without_retries():
    s = request_helpers.build_session()
    assert isinstance(s, Session)
    assert s.adapters["https://"].max_retries.total == 0


@responses.activate
def test_requests_transport_returns_status_and_text():
    responses.add(
        responses.GET,
        "https://api.example.test/v1/patients",
        body='{"patients": []}',
        status=429,
    )
    transport = request_helpers.RequestsTransport()
    resp = transport.get(
        "https://api.example.test/v1/patients", {"Accept": "application/json"}
    )
    assert resp == request_helpers.TransportResponse(429, '{"patients": []}')
    assert responses.calls[0].request.headers["Accept"] == "application/json"


@responses.activate
def test_requests_transport_wraps_network_errors():
    responses.add(
        responses.GET,
        "https://api.example.test/v1/patients",
        body=requests.ConnectionError("connection reset"),
    )
    with pytest.raises(TransientTransportError):
        request_helpers.RequestsTransport().get(
            "https://api.example.test/v1/patients", {}
        )


def test_log_request_redacts_sensitive_items():
    log = CaptureLog()
    request_helpers.log_request(
        log,
        "https://api/x?token=zzz&q=hello",
        {"Authorization": "Basic abc", "Accept": "text/csv"},
        prefix="[p] ",
    )
    line = log.infos[-1]
    assert line.startswith("[p] GET https://api/x?token=***REDACTED***&q=hello")
    assert "Basic abc" not in line
    assert "text/csv" in line


def test_log_exception_includes_url_and_stacktrace():
    log = CaptureLog()
    try:
        raise RuntimeError("boom")
    except Exception as e:
        request_helpers.log_exception(log, "https://api/x", e, prefix="[E] ")
    err = log.errors[-1]
    assert err.startswith("[E] ")
    assert "https://api/x" in err
    assert "Stack Trace:" in err
