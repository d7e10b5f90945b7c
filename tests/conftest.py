from logging import Logger

import pandas as pd
import pytest

from clinic_sync.config import Config
from clinic_sync.http_client import RetryingHttpClient
from logger.basic_logger import setup_logger


# ----- simple logger used across tests -----
class Log:
    def __init__(self):
        self.infos = []
        self.errors = []

    def info(self, msg, *a, **k):
        self.infos.append(msg)

    def error(self, msg, *a, **k):
        self.errors.append(msg)


@pytest.fixture
def logger():
    return Log()


# ----- lightweight HTTP fakes -----
class FakeTransport:
    """
    Either a list (served in order, whatever the URL) or a mapping
    url -> [TransportResponse | Exception, ...]. Exceptions are raised.
    """

    def __init__(self, script):
        if isinstance(script, dict):
            self._m = {k: list(v) for k, v in script.items()}
            self._q = None
        else:
            self._m = None
            self._q = list(script)
        self.calls = []  # tuples (url, headers)

    def get(self, url, headers):
        self.calls.append((url, dict(headers)))
        queue = self._q if self._q is not None else self._m[url]
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_client(logger, sleeps):
    def _make(script, **kw):
        transport = FakeTransport(script)
        client = RetryingHttpClient(
            logger, transport=transport, sleep=sleeps.append, **kw
        )
        return client, transport

    return _make


@pytest.fixture
def config():
    return Config(
        api_key="secret-key",
        base_url="https://api.example.test/v1",
        timezone="UTC",
    )


@pytest.fixture
def fixed_now():
    ts = pd.Timestamp("2024-03-15T10:30:00", tz="UTC")
    return lambda: ts


@pytest.fixture(scope="session", autouse=True)
def log() -> Logger:
    log = setup_logger()
    return log
