import base64
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urljoin

import requests
from requests import Session
from requests.adapters import HTTPAdapter

from clinic_sync.errors import TransientTransportError

DEFAULT_TIMEOUT = 30

_SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "api-key",
    "proxy-authorization",
}
_SENSITIVE_PARAMS = {
    "access_token",
    "token",
    "apikey",
    "api_key",
    "authorization",
    "signature",
    "client_secret",
    "secret",
    "password",
}


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body_text: str


class HttpTransport:
    """The only network primitive the core needs."""

    def get(self, url: str, headers: Dict[str, str]) -> TransportResponse:
        raise NotImplementedError


def build_url(base_url: str, path: str) -> str:
    return urljoin(base_url.rstrip("/") + "/", path.lstrip("/"))


def with_query(url: str, params: Optional[Dict[str, Any]]) -> str:
    """Append params to url; list values repeat the key (``q[]=a&q[]=b``)."""
    clean = {k: v for k, v in (params or {}).items() if v is not None}
    if not clean:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urlencode(clean, doseq=True)}"


def basic_auth_header(api_key: str) -> str:
    # API key as username, literal "x" as password
    token = base64.b64encode(f"{api_key}:x".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_session(pool_size: int = 4) -> Session:
    s = Session()
    # retries are owned by RetryingHttpClient, keep urllib3 from adding its own
    adapter = HTTPAdapter(
        max_retries=0, pool_connections=pool_size, pool_maxsize=pool_size
    )
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


class RequestsTransport(HttpTransport):
    def __init__(
        self, sess: Optional[Session] = None, timeout: float = DEFAULT_TIMEOUT
    ):
        self.sess = sess or build_session()
        self.timeout = timeout

    def get(self, url: str, headers: Dict[str, str]) -> TransportResponse:
        try:
            resp = self.sess.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientTransportError(f"GET {url} failed: {e}") from e
        return TransportResponse(
            status=resp.status_code,
            body_text=resp.content.decode("utf-8", errors="replace"),
        )


def redact_headers(headers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    safe = dict(headers or {})
    for k in list(safe):
        if k.lower() in _SENSITIVE_HEADERS:
            safe[k] = "***REDACTED***"
    return safe


def log_request(log, url: str, headers: Dict[str, Any], prefix: str = ""):
    log.info(f"{prefix}GET {redact_url(url)} headers={redact_headers(headers)}")


def redact_url(url: str) -> str:
    base, sep, query = url.partition("?")
    if not sep:
        return url
    parts = []
    for pair in query.split("&"):
        k, eq, _ = pair.partition("=")
        if eq and k.lower() in _SENSITIVE_PARAMS:
            parts.append(f"{k}=***REDACTED***")
        else:
            parts.append(pair)
    return f"{base}?{'&'.join(parts)}"


def log_exception(log, url: str, e: Exception, prefix: str = ""):
    log.error(
        f"{prefix}Error retrieving data from {redact_url(url)}: {e}\nStack Trace: {traceback.format_exc()}"
    )
