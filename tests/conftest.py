import collections
import datetime as dt

import pytest

from oss_asyncio_client.client import OSSClient
from oss_asyncio_client.transport import Response


class FakeTransport:
    def __init__(self):
        self._responses = collections.deque()
        self.requests = []
        self.closed = False

    async def send(self, method, url, headers, data=None):
        self.requests.append(
            {
                "method": method,
                "url": str(url),
                "headers": headers,
                "data": data,
            }
        )
        if self._responses:
            response = self._responses.popleft()
            if isinstance(response, Exception):
                raise response
            return response
        raise ValueError("No more responses available in the fake transport.")

    async def close(self):
        self.closed = True

    def add_response(
        self,
        body: str | bytes = b"",
        status: int = 200,
        headers: dict | None = None,
    ):
        if isinstance(body, str):
            body = body.encode()
        self._responses.append(Response(status, headers or {}, body))

    def add_error(self, error: Exception):
        self._responses.append(error)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def mock_client(transport):
    return OSSClient(
        access_key_id="test-access-key",
        access_key_secret="test-secret-key",
        endpoint_url="https://oss-cn-hangzhou.aliyuncs.com",
        bucket="test-bucket",
        transport=transport,
    )


@pytest.fixture
def mock_datetime(monkeypatch):
    """Freeze the clock used for the Date header and presigned URL expiry.

    Set ``mock_datetime.now_value`` to move the clock.
    """

    class MockDatetime:
        now_value = dt.datetime(2023, 1, 1, 12, 0, 0, tzinfo=dt.UTC)

        @classmethod
        def now(cls, tz=None):
            return cls.now_value

    class MockDt:
        datetime = MockDatetime
        UTC = dt.UTC

    monkeypatch.setattr("oss_asyncio_client.base.dt", MockDt)
    monkeypatch.setattr("oss_asyncio_client.auth.dt", MockDt)
    return MockDatetime
