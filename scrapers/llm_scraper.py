"""Extract events from collected page text via OpenAI's chat completions API."""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, List

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
LLM_TEXT_LIMIT = 60000

EVENT_EXTRACTION_PROMPT = """あなたは神奈川県相模原市周辺の子ども・家族向けイベントを探すアシスタントです。
以下のWebページ本文から、開催予定のイベント・体験・ワークショップ・講座を抽出してください。

出力は JSON 配列のみ。マークダウンや説明文は不要です。
各要素のスキーマ:
{{"title": "必須", "description": "概要", "place": "会場名", "lat": 35.57, "lon": 139.37, "price": 0, "when": "開催日時（原文のまま）", "tags": ["最大8個"], "url": "詳細ページURL"}}

- 不明な項目は null または空文字にし、推測しないこと。
- price は円単位の数値。無料なら 0。
- lat/lon は会場の座標が分かる場合のみ。
- イベントが見つからなければ [] を返すこと。

本文:
{content}"""

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


class LLMExtractionError(Exception):
    """Raised when the LLM cannot be called or its response cannot be parsed."""


def get_openai_api_key() -> str | None:
    """Load OpenAI API key from environment or ~/.secret_keys."""
    key = os.getenv("OPENAI_API_KEY")
    if key:
        return key
    try:
        with open(os.path.expanduser("~/.secret_keys"), "r") as f:
            for line in f:
                if line.startswith("OPENAI_API_KEY="):
                    return line.split("=", 1)[1].strip() or None
    except FileNotFoundError:
        pass
    return None


def parse_event_array(content: str) -> List[dict[str, Any]]:
    """Return the list of objects encoded in an LLM reply.

    Accepts a bare array, a fenced ```json block, an object wrapping the
    array under ``events``, or an array embedded in surrounding prose.
    Non-object items are dropped.
    """
    text = (content or "").strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("["), text.rfind("]")
        if start == -1 or end <= start:
            raise LLMExtractionError("No JSON array in LLM response")
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as exc:
            raise LLMExtractionError("Invalid JSON returned by LLM") from exc

    if isinstance(data, dict):
        data = data.get("events", [])
    if not isinstance(data, list):
        raise LLMExtractionError("LLM response is not a JSON array")
    return [item for item in data if isinstance(item, dict)]


def extract_events_via_llm(text: str) -> List[dict[str, Any]]:
    """Send page text to the LLM and return the raw event dictionaries."""
    api_key = get_openai_api_key()
    if not api_key:
        raise LLMExtractionError("OPENAI_API_KEY environment variable not set")
    if not text.strip():
        return []

    if len(text) > LLM_TEXT_LIMIT:
        logger.warning(
            "Page text truncated from %d to %d chars before LLM extraction", len(text), LLM_TEXT_LIMIT
        )
    prompt = EVENT_EXTRACTION_PROMPT.format(content=text[:LLM_TEXT_LIMIT])
    payload = {
        "model": OPENAI_MODEL,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": 0,
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    logger.info("Requesting event extraction from %s (%d chars)", OPENAI_MODEL, len(prompt))
    response = requests.post(OPENAI_API_URL, headers=headers, json=payload, timeout=60)
    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        if response.status_code == 429:
            raise RuntimeError(
                "OpenAI API returned status 429: there's a good chance the account is out of money."
            ) from exc
        raise

    data = response.json()
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMExtractionError("Unexpected response shape from LLM") from exc

    events = parse_event_array(content)
    logger.info("LLM returned %d event(s)", len(events))
    return events
