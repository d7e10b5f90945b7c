import time
from typing import Callable, Optional

from clinic_sync.errors import (
    AuthError,
    HttpError,
    RateLimited,
    RetriesExhausted,
    TransientTransportError,
)
from clinic_sync.request_helpers import (
    HttpTransport,
    RequestsTransport,
    TransportResponse,
    basic_auth_header,
    log_request,
    redact_url,
)

MAX_ATTEMPTS = 5
INITIAL_DELAY_MS = 500
RATE_LIMIT_STATUSES = (429, 503)

JSON = "application/json"
CSV = "text/csv"


class RetryingHttpClient:
    """One logical GET with deterministic exponential backoff.

    429/503 sleep and retry without touching the error path. Transport
    failures and other non-2xx statuses are retried until the attempt budget
    is spent, then re-raised. 401 is not retried: a bad key or wrong region
    will not fix itself between attempts.

    Delays double from ``initial_delay_ms`` with no jitter, so a caller that
    sees 429 three times waits 0.5s, 1s and 2s before the fourth attempt.
    """

    def __init__(
        self,
        log,
        transport: Optional[HttpTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        max_attempts: int = MAX_ATTEMPTS,
        initial_delay_ms: int = INITIAL_DELAY_MS,
        user_agent: Optional[str] = None,
    ):
        self.log = log
        self.transport = transport or RequestsTransport()
        self.sleep = sleep
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.user_agent = user_agent

    def _headers(self, api_key: str, accept: str):
        headers = {
            "Authorization": basic_auth_header(api_key),
            "Accept": accept,
        }
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    def _wait(self, delay_ms: int) -> int:
        self.sleep(delay_ms / 1000.0)
        return delay_ms * 2

    def fetch(
        self, url: str, api_key: Optional[str], accept: str = JSON
    ) -> TransportResponse:
        if not api_key:
            raise AuthError("No API key configured; set api.api_key before syncing.")

        headers = self._headers(api_key, accept)
        delay = self.initial_delay_ms
        attempt = 0
        last_limited: Optional[RateLimited] = None

        while attempt < self.max_attempts:
            log_request(self.log, url, headers, prefix=f"[fetch {attempt + 1}/{self.max_attempts}] ")
            try:
                resp = self.transport.get(url, headers)

                if resp.status in RATE_LIMIT_STATUSES:
                    last_limited = RateLimited(resp.status, resp.body_text)
                    attempt += 1
                    if attempt >= self.max_attempts:
                        break
                    self.log.info(
                        f"[fetch] {resp.status} from {redact_url(url)}; backing off {delay}ms"
                    )
                    delay = self._wait(delay)
                    continue

                if 200 <= resp.status < 300:
                    return resp

                if resp.status == 401:
                    raise AuthError(
                        "Unauthorized (401): check the API key and that base_url "
                        "matches the account's region.",
                        status=401,
                    )

                raise HttpError(resp.status, resp.body_text)

            except (HttpError, TransientTransportError) as e:
                attempt += 1
                if attempt >= self.max_attempts:
                    raise
                self.log.info(
                    f"[fetch] attempt {attempt} failed for {redact_url(url)}: {e}; retrying in {delay}ms"
                )
                delay = self._wait(delay)

        raise RetriesExhausted(
            self.max_attempts, last_limited.status if last_limited else None
        ) from last_limited
