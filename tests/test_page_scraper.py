from unittest.mock import Mock, patch
import os
import sys

import requests

# Ensure the project root is on the import path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from scrapers.page_scraper import collect_sources, extract_links, html_to_text


MUSEUM_URL = "https://sagamiharacitymuseum.jp/event/"
BROKEN_URL = "https://broken.example.com/"

MUSEUM_HTML = """
<html>
<head><style>.x { color: red }</style><script>var tracking = 1;</script></head>
<body>
  <h1>イベント情報</h1>
  <ul>
    <li><a href="/event/koke.html"><span>苔の観察会</span>
        （5月3日）</a></li>
    <li><a href="https://www.e-sagamihara.com/event/star">星空 観望会 in 相模湖</a></li>
    <li><a href="#top">TOP</a></li>
    <li><a href="/x">短い</a></li>
    <li><a href="mailto:info@example.com">お問い合わせはこちら</a></li>
  </ul>
</body>
</html>
"""


def fake_get(url, **kwargs):  # pylint: disable=unused-argument
    if url == BROKEN_URL:
        raise requests.ConnectionError("connection refused")
    resp = Mock()
    resp.raise_for_status = lambda: None
    resp.encoding = "utf-8"
    resp.text = MUSEUM_HTML
    return resp


def test_extract_links_resolves_and_filters():
    links = extract_links(MUSEUM_HTML, MUSEUM_URL)
    assert [link.url for link in links] == [
        "https://sagamiharacitymuseum.jp/event/koke.html",
        "https://www.e-sagamihara.com/event/star",
    ]
    assert links[0].label == "苔の観察会 （5月3日）"
    assert links[0].host == "sagamiharacitymuseum.jp"
    assert links[1].host == "e-sagamihara.com"


def test_html_to_text_drops_scripts_and_styles():
    text = html_to_text(MUSEUM_HTML)
    assert "イベント情報" in text
    assert "tracking" not in text
    assert "color" not in text
    assert "  " not in text


def test_html_to_text_is_truncated():
    assert len(html_to_text("<p>" + "あ" * 50000 + "</p>", limit=100)) == 100


def test_collect_sources_records_failures_and_continues():
    with patch("scrapers.page_scraper.requests.get", side_effect=fake_get) as mock_get:
        snapshot = collect_sources([BROKEN_URL, MUSEUM_URL])

    assert mock_get.call_count == 2
    assert snapshot.fetched == 1
    assert len(snapshot.links) == 2
    assert "苔の観察会" in snapshot.text
    assert len(snapshot.errors) == 1
    assert snapshot.errors[0].startswith(BROKEN_URL)


def test_collect_sources_sends_browser_headers():
    with patch("scrapers.page_scraper.requests.get", side_effect=fake_get) as mock_get:
        collect_sources([MUSEUM_URL])

    headers = mock_get.call_args.kwargs["headers"]
    assert headers["User-Agent"] == "Mozilla/5.0"
    assert headers["Accept-Language"].startswith("ja-JP")
    assert mock_get.call_args.kwargs["timeout"] > 0
