from unittest.mock import Mock, patch
import json
import os
import sys

import pytest
import requests

# Ensure the project root is on the import path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from scrapers.llm_scraper import LLM_TEXT_LIMIT, LLMExtractionError, extract_events_via_llm, parse_event_array


MOSS_EVENT = {
    "title": "苔テラリウム教室",
    "description": "小さな苔の庭を作ります",
    "place": "相模川ふれあい科学館",
    "lat": 35.535,
    "lon": 139.383,
    "price": 500,
    "when": "6月1日（日）10:00",
    "tags": ["苔", "工作"],
    "url": "https://sagamigawa-fureai.com/event/moss",
}


def openai_response(content, status_code=200):
    resp = Mock()
    resp.status_code = status_code
    if status_code >= 400:
        resp.raise_for_status = Mock(side_effect=requests.HTTPError(f"{status_code} error"))
    else:
        resp.raise_for_status = lambda: None
    resp.json = lambda: {"choices": [{"message": {"content": content}}]}
    return resp


def test_parse_bare_array():
    assert parse_event_array(json.dumps([MOSS_EVENT])) == [MOSS_EVENT]


def test_parse_fenced_array_with_prose():
    content = "以下がイベントです。\n```json\n" + json.dumps([MOSS_EVENT], ensure_ascii=False) + "\n```"
    assert parse_event_array(content)[0]["title"] == "苔テラリウム教室"


def test_parse_array_embedded_in_text():
    content = "Events: " + json.dumps([MOSS_EVENT]) + " -- end"
    assert len(parse_event_array(content)) == 1


def test_parse_object_with_events_key_and_drops_non_objects():
    content = json.dumps({"events": [MOSS_EVENT, "noise", 3]})
    assert parse_event_array(content) == [MOSS_EVENT]


@pytest.mark.parametrize("content", ["", "no json here", "[{broken", '"just a string"'])
def test_parse_rejects_malformed_output(content):
    with pytest.raises(LLMExtractionError):
        parse_event_array(content)


@patch.dict(os.environ, {"OPENAI_API_KEY": "test-key"})
def test_extract_events_via_llm_posts_prompt():
    with patch(
        "scrapers.llm_scraper.requests.post",
        return_value=openai_response(json.dumps([MOSS_EVENT])),
    ) as mock_post:
        events = extract_events_via_llm("相模川ふれあい科学館 6月1日 苔テラリウム教室")

    assert events == [MOSS_EVENT]
    payload = mock_post.call_args.kwargs["json"]
    assert "苔テラリウム教室" in payload["messages"][0]["content"]
    assert payload["temperature"] == 0
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"


@patch.dict(os.environ, {"OPENAI_API_KEY": "test-key"})
def test_extract_events_via_llm_logs_truncation(caplog):
    text = "苔" * (LLM_TEXT_LIMIT + 500)
    with patch("scrapers.llm_scraper.requests.post", return_value=openai_response("[]")) as mock_post:
        with caplog.at_level("WARNING", logger="scrapers.llm_scraper"):
            assert extract_events_via_llm(text) == []

    prompt = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
    assert prompt.count("苔") == LLM_TEXT_LIMIT
    assert "truncated" in caplog.text


@patch.dict(os.environ, {"OPENAI_API_KEY": "test-key"})
def test_extract_events_via_llm_out_of_credits():
    with patch("scrapers.llm_scraper.requests.post", return_value=openai_response("", status_code=429)):
        with pytest.raises(RuntimeError, match="429"):
            extract_events_via_llm("some page text")


@patch.dict(os.environ, {"OPENAI_API_KEY": "test-key"})
def test_extract_events_via_llm_skips_blank_text():
    with patch("scrapers.llm_scraper.requests.post") as mock_post:
        assert extract_events_via_llm("   ") == []
    mock_post.assert_not_called()


def test_extract_events_via_llm_requires_key():
    with patch("scrapers.llm_scraper.get_openai_api_key", return_value=None):
        with pytest.raises(LLMExtractionError):
            extract_events_via_llm("some page text")
