"""Best-effort link summaries used to pre-fill an article's summary field.

Any failure yields ``None``; a missing summary never blocks a write.
"""
from __future__ import annotations

import logging
from typing import Protocol

import requests

from .config import env_or_config

logger = logging.getLogger(__name__)

_DISABLED_PROVIDERS = frozenset({"", "none", "off", "false", "0", "disabled"})

SUMMARY_PROMPT = (
    "Generate a 1-2 sentence professional technical summary/hook for the following article link. "
    "The tone should be engaging for technical professionals on LinkedIn.\n"
    'Link: "{link}"'
)


class LinkSummarizer(Protocol):
    def summarize(self, link: str) -> str | None: ...


class OpenAISummarizer:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 60,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def summarize(self, link: str) -> str | None:
        payload = {
            "model": self.model,
            "temperature": 0.3,
            "messages": [
                {"role": "system", "content": "You write short technical article summaries. Reply with the summary only."},
                {"role": "user", "content": SUMMARY_PROMPT.format(link=link)},
            ],
        }
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
            text = str(data["choices"][0]["message"]["content"] or "").strip()
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("summary request failed for %s: %s", link, exc)
            return None
        return text or None


def build_summarizer() -> LinkSummarizer | None:
    provider = str(env_or_config("SUMMARY_PROVIDER", "summary.provider", "none")).strip().lower()
    if provider in _DISABLED_PROVIDERS:
        return None
    api_key = str(env_or_config("OPENAI_API_KEY", "summary.api_key", "")).strip()
    if not api_key:
        logger.warning("SUMMARY_PROVIDER=%s but OPENAI_API_KEY is empty; summaries disabled", provider)
        return None
    return OpenAISummarizer(
        api_key,
        base_url=str(env_or_config("OPENAI_BASE_URL", "summary.base_url", "https://api.openai.com/v1")),
        model=str(env_or_config("OPENAI_MODEL", "summary.model", "gpt-4o-mini")),
    )
