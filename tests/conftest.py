import json
import sys
from pathlib import Path

import pytest
import requests

# Allow running the tests from a checkout without installing the package
CLIENT_DIR = Path(__file__).resolve().parent.parent / "client"
if str(CLIENT_DIR) not in sys.path:
    sys.path.insert(0, str(CLIENT_DIR))


class FakeResponse:
    def __init__(self, data=None, status_code=200, text=None):
        self._data = data
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(data)

    def json(self):
        return json.loads(self.text)


class FakePost:
    """Stand-in for requests.post that records every call"""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else FakeResponse({"code": "1", "message": "Success"})
        self.error = error
        self.calls = []

    def __call__(self, url, data=None, headers=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last_body(self):
        return json.loads(self.calls[-1]["data"])


@pytest.fixture
def fake_post(monkeypatch):
    fake = FakePost()
    monkeypatch.setattr(requests, "post", fake)
    return fake


@pytest.fixture
def client():
    from msegat_client import MsegatClient
    return MsegatClient("testUser", "testApiKey", "testSender")
