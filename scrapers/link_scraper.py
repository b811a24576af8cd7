"""Heuristic event extraction from anchor labels when no structured data is available."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from ingest.schemas import Link

from .utils import clean_title, extract_when, has_any, normalize_text

LISTING_LIMIT = 20
MIN_CANDIDATES = 6
NEARBY_PLACE = "相模原・近隣"

PRIORITY_DOMAINS = (
    "city.sagamihara.kanagawa.jp",
    "sagamiharacitymuseum.jp",
    "sagamigawa-fureai.com",
    "fujino-art.jp",
    "e-sagamihara.com",
    "pref.kanagawa.jp",
    "kanagawa-park.or.jp",
    "jalps.org",
)

LOCATION_WORDS = (
    "相模原", "緑区", "中央区", "南区", "橋本", "淵野辺", "相模大野", "相模湖",
    "城山", "藤野", "愛川", "座間", "町田", "八王子", "高尾", "厚木",
)

EVENTISH_WORDS = (
    "イベント", "体験", "ワークショップ", "講座", "教室", "展示", "観察", "見学",
    "工作", "工房", "フェア", "マルシェ", "まつり", "祭", "ハンズオン", "セミナー",
    "天体観望", "星空", "プラネタリウム", "自然観察", "ガイドツアー", "クラフト",
)

# Notices, tenders, recruitment and other non-event pages.
TITLE_BLACKLIST = (
    "入札", "落札", "公告", "指名停止", "募集要項", "公募型", "交通規制",
    "税", "納付", "確定申告", "防災", "注意喚起", "詐欺", "選挙", "議会",
    "採用", "人事", "求人", "条例", "告示", "コロナ", "新型",
)

EVENTISH_URL_PARTS = (
    "event", "workshop", "ws", "calendar", "katsudou", "exhibition",
)

# Trigger words -> related terms added to the query.
QUERY_SYNONYMS = (
    (("苔", "こけ", "ｺｹ"), ("苔", "こけ", "コケ", "苔玉", "テラリウム", "苔観察", "苔庭")),
    (("手芸", "クラフト", "ハンドメイド"), ("手芸", "ハンドメイド", "クラフト", "刺繍", "裁縫", "ビーズ", "フェルト", "羊毛フェルト")),
    (("編み", "ニット"), ("編み物", "かぎ編み", "棒針編み", "ニット", "アミグルミ")),
    (("木工", "木"), ("木工", "木の工作", "DIY", "工房体験")),
    (("花", "フラワー"), ("花屋", "ブーケ", "フラワーアレンジメント", "生け花", "ドライフラワー")),
    (("科学", "科学館", "天体"), ("科学", "科学館", "工作", "実験", "観察", "天体観望", "星空", "プラネタリウム")),
)


@dataclass
class ScoredLink:
    url: str
    label: str
    host: str
    score: int


def expand_terms(query: str) -> List[str]:
    """Return the normalized query followed by any themed synonyms."""
    normalized = normalize_text(query).strip()
    if not normalized:
        return []
    terms = [normalized]
    for triggers, related in QUERY_SYNONYMS:
        if any(normalize_text(t) in normalized for t in triggers):
            for term in related:
                term = normalize_text(term)
                if term not in terms:
                    terms.append(term)
    return terms


def url_looks_event(url: str) -> bool:
    lowered = (url or "").lower()
    return any(part in lowered for part in EVENTISH_URL_PARTS)


def is_blacklisted(label: str) -> bool:
    return has_any(label, TITLE_BLACKLIST)


def score_link(link: Link, query: str = "", terms: List[str] | None = None) -> int:
    """Heuristic relevance of a link for the given query."""
    if terms is None:
        terms = expand_terms(query)
    label = normalize_text(link.label)
    score = 0
    if is_blacklisted(link.label):
        score -= 100
    if url_looks_event(link.url):
        score += 4
    if has_any(link.label, EVENTISH_WORDS):
        score += 6
    if has_any(link.label, LOCATION_WORDS):
        score += 6
    if link.host in PRIORITY_DOMAINS:
        score += 8

    query_norm = normalize_text(query).strip()
    if terms and any(term in label for term in terms):
        score += 10
    elif query_norm and query_norm in label:
        score += 6
    return score


def score_links(links: Iterable[Link], query: str = "") -> List[ScoredLink]:
    terms = expand_terms(query)
    return [
        ScoredLink(url=link.url, label=link.label, host=link.host, score=score_link(link, query, terms))
        for link in links
    ]


def select_links(links: Iterable[Link], query: str = "") -> List[ScoredLink]:
    """Pick the best-scoring links, relaxing the threshold once if too few survive.

    Results are sorted by descending score; repeated URLs are dropped.
    """
    scored = score_links(links, query)
    has_query = bool(normalize_text(query).strip())
    strict, relaxed = (6, 4) if has_query else (8, 6)

    picked = [s for s in scored if s.score >= strict]
    if len(picked) < MIN_CANDIDATES:
        picked = [s for s in scored if s.score >= relaxed]
    picked.sort(key=lambda s: s.score, reverse=True)

    seen: set[str] = set()
    unique: List[ScoredLink] = []
    for item in picked:
        if item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique


def link_to_event(url: str, label: str, query: str = "") -> dict:
    """Promote an anchor to a pseudo-event record."""
    return {
        "title": clean_title(label),
        "description": "",
        "place": NEARBY_PLACE if has_any(label, LOCATION_WORDS) else "",
        "lat": None,
        "lon": None,
        "price": None,
        "when": extract_when(label),
        "tags": [query] if query else [],
        "url": url,
    }


def events_from_query_links(links: Iterable[Link], query: str) -> List[dict]:
    """Links whose label contains an expanded query term; empty without a query."""
    terms = expand_terms(query)
    if not terms:
        return []
    return [
        link_to_event(link.url, link.label, query)
        for link in links
        if not is_blacklisted(link.label) and any(term in normalize_text(link.label) for term in terms)
    ]


def events_from_keyword_links(links: Iterable[Link], query: str = "") -> List[dict]:
    """Links that look like event announcements by generic keyword scoring."""
    return [link_to_event(s.url, s.label, query) for s in select_links(links, query) if s.score > 0]


def events_from_listing(links: Iterable[Link], query: str = "", limit: int = LISTING_LIMIT) -> List[dict]:
    """The first ``limit`` non-blacklisted links, as a last resort."""
    kept = [link for link in links if not is_blacklisted(link.label)]
    return [link_to_event(link.url, link.label, query) for link in kept[:limit]]
