from __future__ import annotations

import pytest
import requests

from article_source import config
from article_source.summarizer import OpenAISummarizer, build_summarizer


class FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, result) -> None:
        self.result = result
        self.calls: list[tuple[str, dict]] = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "CONFIG_FILE", tmp_path / "config.json")
    config.reload_config()
    for key in ("SUMMARY_PROVIDER", "OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENAI_MODEL"):
        monkeypatch.delenv(key, raising=False)
    yield
    config.reload_config()


def test_summarize_returns_trimmed_text():
    session = FakeSession(FakeResponse({"choices": [{"message": {"content": "  A short hook. "}}]}))
    summarizer = OpenAISummarizer("sk-test", base_url="https://llm.example/v1/", model="m", session=session)

    assert summarizer.summarize("https://example.com/a") == "A short hook."
    url, kwargs = session.calls[0]
    assert url == "https://llm.example/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["model"] == "m"
    assert "https://example.com/a" in kwargs["json"]["messages"][-1]["content"]


@pytest.mark.parametrize(
    "result",
    [
        requests.ConnectionError("offline"),
        FakeResponse({}, status_code=429),
        FakeResponse({"unexpected": True}),
        FakeResponse({"choices": []}),
        FakeResponse({"choices": [{"message": {"content": "   "}}]}),
    ],
)
def test_summarize_failures_yield_none(result):
    summarizer = OpenAISummarizer("sk-test", session=FakeSession(result))
    assert summarizer.summarize("https://example.com/a") is None


def test_build_summarizer_disabled_by_default():
    assert build_summarizer() is None


def test_build_summarizer_requires_api_key(monkeypatch):
    monkeypatch.setenv("SUMMARY_PROVIDER", "openai")
    assert build_summarizer() is None


def test_build_summarizer_reads_environment(monkeypatch):
    monkeypatch.setenv("SUMMARY_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-live")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-test")
    summarizer = build_summarizer()
    assert isinstance(summarizer, OpenAISummarizer)
    assert summarizer.model == "gpt-test"
    assert summarizer.api_key == "sk-live"
