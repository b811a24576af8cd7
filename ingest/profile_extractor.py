"""Build a child profile from a guardian interview transcript using OpenAI."""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any

from dotenv import load_dotenv
from openai import APIStatusError, OpenAI

from scrapers.llm_scraper import get_openai_api_key

load_dotenv()

PROFILE_MODEL = os.getenv("OPENAI_PROFILE_MODEL", os.getenv("OPENAI_MODEL", "gpt-4o-mini"))

SYSTEM_PROMPT = (
    "あなたは保護者インタビューから児童のプロフィールを作るアシスタントです。\n"
    "出力はJSONのみ。未知はnull/空で。推測しない。"
)


class ProfileExtractionError(Exception):
    """Raised when the model reply is not a JSON object."""


class QuotaExceededError(RuntimeError):
    """Raised when the OpenAI account is rate limited or out of quota."""


def get_openai_client() -> OpenAI:
    """Get OpenAI client with API key from environment or secret file."""
    api_key = get_openai_api_key()
    if not api_key:
        raise ValueError("OpenAI API key not found in environment or ~/.secret_keys")
    return OpenAI(api_key=api_key)


def build_prompt(
    transcript: str, child_id: str, display_name: str | None = None, age: int | str | None = None
) -> str:
    lines = [
        f"childId: {child_id}",
        f"displayName: {display_name}" if display_name else "",
        f"age: {age}" if age not in (None, "") else "",
        "",
        "----- transcript start -----",
        transcript,
        "----- transcript end -----",
    ]
    return "\n".join(line for line in lines if line)


def _strip_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def extract_profile(
    transcript: str,
    child_id: str,
    display_name: str | None = None,
    age: int | str | None = None,
    client: OpenAI | None = None,
) -> dict[str, Any]:
    """Return the extracted profile with a ``lastUpdated`` UTC timestamp."""
    client = client or get_openai_client()
    try:
        response = client.chat.completions.create(
            model=PROFILE_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(transcript, child_id, display_name, age)},
            ],
            response_format={"type": "json_object"},
            temperature=0,
        )
    except APIStatusError as exc:
        if exc.response.status_code == 429:
            raise QuotaExceededError("OpenAI API returned status 429: quota exceeded") from exc
        raise

    content = response.choices[0].message.content or ""
    try:
        profile = json.loads(_strip_fences(content))
    except json.JSONDecodeError as exc:
        raise ProfileExtractionError("Invalid JSON returned by LLM") from exc
    if not isinstance(profile, dict):
        raise ProfileExtractionError("LLM profile is not a JSON object")

    profile["lastUpdated"] = datetime.now(timezone.utc).isoformat()
    return profile
