import json

from ingest.source_catalog import load_sources, source_urls


def test_load_sources_default_catalog():
    sources = load_sources()
    assert len(sources) >= 6
    first = sources[0]
    assert first.name and first.url.startswith("https://")


def test_source_urls_skip_duplicates(tmp_path):
    catalog = tmp_path / "sources.json"
    entry = {"name": "博物館", "url": "https://sagamiharacitymuseum.jp/event/", "type": "museum", "city": "相模原市"}
    catalog.write_text(json.dumps([entry, entry]), encoding="utf-8")
    assert source_urls(catalog) == ["https://sagamiharacitymuseum.jp/event/"]
