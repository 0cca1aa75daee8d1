"""Tests for search index adapters."""

import pytest
import requests
from sqlalchemy import text

import querydeck.search.adapters as adapters_mod
from querydeck.database.schema import Item
from querydeck.query.errors import SearchUnavailable
from querydeck.search.adapters import (
    HttpSearchIndex,
    SqliteFtsSearchIndex,
    create_search_index,
    index_item,
    rebuild_item_search,
    tokenize,
)


def test_tokenize_drops_punctuation_and_operators():
    assert tokenize('spring "invoice" OR* (2024)') == ["spring", "invoice", "OR", "2024"]
    assert tokenize("  ") == []


def test_match_expression_quotes_every_token():
    assert SqliteFtsSearchIndex.build_match_expression('inv "2024') == '"inv"* "2024"*'
    assert SqliteFtsSearchIndex.build_match_expression("--") is None


def test_sqlite_search_is_tenant_scoped(session, example_data):
    index = SqliteFtsSearchIndex(session)
    assert sorted(index.search("abc-123", "invoice")) == ["item-1", "item-2"]
    assert index.search("xyz-789", "invoice") == ["item-x"]


def test_sqlite_search_prefix_match(session, example_data):
    index = SqliteFtsSearchIndex(session)
    assert index.search("abc-123", "autu") == ["item-3"]


def test_sqlite_search_requires_all_terms(session, example_data):
    index = SqliteFtsSearchIndex(session)
    assert index.search("abc-123", "summer invoice") == ["item-2"]
    assert index.search("abc-123", "summer quote") == []


def test_sqlite_search_tolerates_fts_syntax_in_user_text(session, example_data):
    index = SqliteFtsSearchIndex(session)
    assert index.search("abc-123", '"spring* ((') == ["item-1"]
    assert index.search("abc-123", "***") == []


def test_sqlite_search_max_hits(session, example_data):
    index = SqliteFtsSearchIndex(session, max_hits=1)
    assert len(index.search("abc-123", "invoice")) == 1


def test_index_item_replaces_existing_row(session, example_data):
    item = session.get(Item, "item-1")
    item.name = "Renamed record"
    index_item(session, item)
    session.commit()

    index = SqliteFtsSearchIndex(session)
    assert index.search("abc-123", "spring") == []
    assert index.search("abc-123", "renamed") == ["item-1"]


def test_rebuild_item_search(session, example_data):
    items = session.query(Item).filter(Item.tenant_id == "abc-123").all()
    assert rebuild_item_search(session, items) == 3
    session.commit()

    index = SqliteFtsSearchIndex(session)
    assert index.search("xyz-789", "winter") == []
    assert sorted(index.search("abc-123", "invoice")) == ["item-1", "item-2"]


def test_sqlite_search_failure_is_unavailable(session):
    session.execute(text("DROP TABLE item_search"))
    with pytest.raises(SearchUnavailable, match="SQLite search failed"):
        SqliteFtsSearchIndex(session).search("t1", "anything")


class _Response:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


def test_http_search_posts_tenant_filter(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return _Response({"hits": [{"id": "item-2"}, {"id": 7}, {"title": "no id"}]})

    monkeypatch.setattr(adapters_mod.requests, "post", fake_post)
    index = HttpSearchIndex("http://search.local/", index="items", api_key="secret", timeout_seconds=2, max_hits=50)

    assert index.search('abc"123', "spring invoice") == ["item-2", "7"]
    assert calls[0]["url"] == "http://search.local/indexes/items/search"
    assert calls[0]["json"]["q"] == "spring invoice"
    assert calls[0]["json"]["filter"] == 'tenant_id = "abc\\"123"'
    assert calls[0]["json"]["limit"] == 50
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"
    assert calls[0]["timeout"] == 2


def test_http_search_skips_request_for_tokenless_text(monkeypatch):
    def fail_post(*_, **__):
        raise AssertionError("no request expected")

    monkeypatch.setattr(adapters_mod.requests, "post", fail_post)
    assert HttpSearchIndex("http://search.local").search("t1", "!!") == []


@pytest.mark.parametrize(
    "response_or_error",
    [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
        _Response(status_code=503),
        _Response(invalid_json=True),
        _Response({"message": "no hits key"}),
    ],
)
def test_http_search_failures_are_unavailable(monkeypatch, response_or_error):
    def fake_post(*_, **__):
        if isinstance(response_or_error, Exception):
            raise response_or_error
        return response_or_error

    monkeypatch.setattr(adapters_mod.requests, "post", fake_post)
    with pytest.raises(SearchUnavailable):
        HttpSearchIndex("http://search.local").search("t1", "invoice")


def test_create_search_index_backends(session):
    assert isinstance(create_search_index({"backend": "sqlite"}, session), SqliteFtsSearchIndex)
    http_index = create_search_index(
        {"backend": "http", "http": {"url": "http://search.local", "index": "docs"}},
        session,
    )
    assert isinstance(http_index, HttpSearchIndex)
    assert http_index.index == "docs"
    with pytest.raises(ValueError, match="Unknown search backend"):
        create_search_index({"backend": "elastic"}, session)
