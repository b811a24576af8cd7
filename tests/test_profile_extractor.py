from unittest.mock import Mock
import os
import sys

import httpx
import openai
import pytest

# Ensure the project root is on the import path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from ingest.profile_extractor import (
    ProfileExtractionError,
    QuotaExceededError,
    build_prompt,
    extract_profile,
)


def fake_client(content=None, error=None):
    client = Mock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        message = Mock()
        message.content = content
        choice = Mock()
        choice.message = message
        client.chat.completions.create.return_value = Mock(choices=[choice])
    return client


def test_build_prompt_skips_missing_fields():
    prompt = build_prompt("苔が好き", "c1")
    assert "childId: c1" in prompt
    assert "displayName" not in prompt
    assert "age" not in prompt
    assert "苔が好き" in prompt


def test_build_prompt_keeps_zero_age():
    assert "age: 0" in build_prompt("t", "c1", age=0)


def test_extract_profile_adds_timestamp():
    client = fake_client('```json\n{"childId": "c1", "interests": ["苔"]}\n```')
    profile = extract_profile("苔が好きです", "c1", display_name="はな", client=client)

    assert profile["childId"] == "c1"
    assert profile["interests"] == ["苔"]
    assert "lastUpdated" in profile
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "displayName: はな" in kwargs["messages"][1]["content"]


@pytest.mark.parametrize("content", ["not json", "[1, 2]", None])
def test_extract_profile_rejects_non_objects(content):
    with pytest.raises(ProfileExtractionError):
        extract_profile("t", "c1", client=fake_client(content))


def test_extract_profile_maps_rate_limit():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.RateLimitError(
        "Too Many Requests",
        response=httpx.Response(429, request=request),
        body=None,
    )
    with pytest.raises(QuotaExceededError):
        extract_profile("t", "c1", client=fake_client(error=error))


def test_build_prompt_accepts_free_text_age():
    assert "age: 5歳" in build_prompt("t", "c1", age="5歳")
    assert "age" not in build_prompt("t", "c1", age="")
