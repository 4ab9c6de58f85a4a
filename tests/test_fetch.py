"""Tests for the fetch executor and its 404 policy."""

import asyncio

import pytest

from finance_sync.errors import NotFoundError, ServerError, UnknownError, UnsupportedOperationError
from finance_sync.models import CacheKey, SyncEventType


class TestListPolicy:
    """Tests for list reads per generation."""

    def test_legacy_404_is_empty_list(self, make_client, fake_api):
        """Test that legacy 404 returns [] and caches it."""
        fake_api.on("GET", "/api/category/select/active", status=404)
        client = make_client("legacy")
        assert asyncio.run(client.list("category")) == []
        assert client.cache.get(CacheKey.list_of("category")) == []

    def test_modern_empty_list(self, make_client, fake_api):
        """Test that modern 200 with [] returns []."""
        fake_api.on("GET", "/api/category/active", json_body=[])
        client = make_client("modern")
        assert asyncio.run(client.list("category")) == []

    def test_modern_404_is_failure(self, make_client, fake_api, audit_sink):
        """Test that modern 404 is not treated as empty."""
        fake_api.on("GET", "/api/category/active", status=404)
        client = make_client("modern")
        with pytest.raises(UnknownError) as exc_info:
            asyncio.run(client.list("category"))
        assert exc_info.value.status == 404
        assert CacheKey.list_of("category") not in client.cache
        assert audit_sink.last().event_type == SyncEventType.LIST_FAILED

    def test_list_populates_cache_and_clears_stale(self, make_client, fake_api, audit_sink):
        """Test that a read refreshes a stale entry."""
        rows = [{"categoryName": "food"}, {"categoryName": "rent"}]
        fake_api.on("GET", "/api/category/active", json_body=rows)
        client = make_client()
        key = CacheKey.list_of("category")
        client.cache.set(key, [], stale=True)

        assert asyncio.run(client.list("category")) == rows
        assert client.cache.get(key) == rows
        assert not client.cache.is_stale(key)
        assert audit_sink.last().details["count"] == 2

    def test_server_error_propagates(self, make_client, fake_api):
        """Test that other failures are raised."""
        fake_api.on("GET", "/api/account/select/active", status=500,
                    json_body={"response": "db down"})
        client = make_client("legacy")
        with pytest.raises(ServerError) as exc_info:
            asyncio.run(client.list("account"))
        assert exc_info.value.message == "db down"


class TestDerivedReads:
    """Tests for scoped transaction lists and totals."""

    def test_transactions_by_account_legacy(self, make_client, fake_api):
        """Test the legacy account list and its cache key."""
        fake_api.on("GET", "/api/transaction/account/select/chase_brian",
                    json_body=[{"guid": "g1"}])
        client = make_client("legacy")
        asyncio.run(client.transactions_by_account("chase_brian"))
        assert client.cache.get(CacheKey.list_of("transaction", "chase_brian")) == [
            {"guid": "g1"},
        ]

    def test_transactions_by_category_modern(self, make_client, fake_api):
        """Test the category list cache key."""
        fake_api.on("GET", "/api/transaction/category/food", json_body=[])
        client = make_client()
        assert asyncio.run(client.transactions_by_category("food")) == []
        assert CacheKey.list_of("transaction", "category", "food") in client.cache

    def test_transactions_by_description_legacy_404(self, make_client, fake_api):
        """Test that scoped legacy lists also treat 404 as empty."""
        fake_api.on("GET", "/api/transaction/description/store", status=404)
        client = make_client("legacy")
        assert asyncio.run(client.transactions_by_description("store")) == []

    def test_totals_modern_canonical(self, make_client, fake_api):
        """Test canonicalized totals path and cache key."""
        totals = {"totals": 10.0, "totalsCleared": 10.0}
        fake_api.on("GET", "/api/transaction/account/totals/chasebrian", json_body=totals)
        client = make_client("modern")

        assert asyncio.run(client.totals_for_account("Chase.Brian")) == totals
        assert client.cache.get(CacheKey.aggregate_of("totals", "chasebrian")) == totals

    def test_totals_legacy_raw(self, make_client, fake_api):
        """Test legacy totals keep the raw name."""
        fake_api.on("GET", "/api/transaction/account/totals/Chase_Brian",
                    json_body={"totals": 1.0})
        client = make_client("legacy")
        asyncio.run(client.totals_for_account("Chase_Brian"))
        assert CacheKey.aggregate_of("totals", "Chase_Brian") in client.cache


class TestGetOne:
    """Tests for single-entity reads."""

    def test_modern_get_fills_detail(self, make_client, fake_api):
        """Test that get-one caches under the natural key."""
        fake_api.on("GET", "/api/parameter/7",
                    json_body={"parameterId": 7, "parameterName": "tz"})
        client = make_client()
        asyncio.run(client.get("parameter", 7))
        assert client.cache.get(CacheKey.detail_of("parameter", "tz")) == {
            "parameterId": 7, "parameterName": "tz",
        }

    def test_get_404(self, make_client, fake_api):
        """Test that get-one 404 is NotFound."""
        fake_api.on("GET", "/api/category/nope", status=404)
        client = make_client()
        with pytest.raises(NotFoundError):
            asyncio.run(client.get("category", "nope"))

    def test_legacy_has_no_get(self, make_client, fake_api):
        """Test that legacy get-one is unsupported."""
        client = make_client("legacy")
        with pytest.raises(UnsupportedOperationError):
            asyncio.run(client.get("category", "food"))
        assert fake_api.requests == []
