# conftest.py

import json
import time
from types import SimpleNamespace

import pytest

from config import GeminiSettings
from gemini_client import GeminiClient


def gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_response(scripted):
    """
    str  -> 200 with that candidate text
    dict -> 200 with that JSON body
    int  -> that status code with an error body
    """
    if isinstance(scripted, str):
        body = gemini_body(scripted)
        return SimpleNamespace(status_code=200, text=json.dumps(body), json=lambda: body)
    if isinstance(scripted, dict):
        return SimpleNamespace(status_code=200, text=json.dumps(scripted), json=lambda: scripted)

    def _bad_json():
        raise ValueError("not json")

    return SimpleNamespace(status_code=scripted, text='{"error": "boom"}', json=_bad_json)


class FakeSession:
    """Stands in for requests.Session; replays scripted responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append(SimpleNamespace(url=url, params=params, json=json, timeout=timeout))
        if not self.responses:
            raise AssertionError("unexpected extra request")
        scripted = self.responses.pop(0)
        if isinstance(scripted, Exception):
            raise scripted
        return make_response(scripted)

    def prompt(self, i=-1):
        return self.calls[i].json["contents"][0]["parts"][0]["text"]


@pytest.fixture
def make_client():
    def _make(*responses, api_key="test-key", model="test-model"):
        session = FakeSession(responses)
        settings = GeminiSettings(api_key=api_key, model=model, api_base_url="https://example.test/v1beta")
        return GeminiClient(settings, session=session), session
    return _make


@pytest.fixture(autouse=True)
def sleeps(monkeypatch):
    """No real waiting in tests; records every requested pause."""
    recorded = []
    monkeypatch.setattr(time, "sleep", lambda s: recorded.append(s))
    return recorded
