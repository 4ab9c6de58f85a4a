"""Tests for the endpoint resolver."""

import pytest

from finance_sync.endpoints import encode_key, resolve
from finance_sync.errors import UnsupportedOperationError
from finance_sync.models import Generation, KeyKind, ListScope, Operation, ResourceKind


NAME_KEYED = [ResourceKind.ACCOUNT, ResourceKind.CATEGORY, ResourceKind.DESCRIPTION]


class TestLegacyEndpoints:
    """Tests for the verb-in-path generation."""

    @pytest.mark.parametrize("kind", NAME_KEYED + [ResourceKind.PARAMETER])
    def test_table(self, kind):
        """Test every mutation and the active list."""
        r = kind.value
        gen = Generation.LEGACY
        assert resolve(kind, Operation.CREATE, gen).path == f"/api/{r}/insert"
        assert resolve(kind, Operation.CREATE, gen).method == "POST"
        assert resolve(kind, Operation.UPDATE, gen, key="old").path == f"/api/{r}/update/old"
        assert resolve(kind, Operation.UPDATE, gen, key="old").method == "PUT"
        assert resolve(kind, Operation.DELETE, gen, key="x").path == f"/api/{r}/delete/x"
        assert resolve(kind, Operation.DELETE, gen, key="x").method == "DELETE"
        assert resolve(kind, Operation.LIST, gen).path == f"/api/{r}/select/active"

    def test_legacy_keys_by_name(self):
        """Test that legacy always addresses by natural key."""
        endpoint = resolve("parameter", "delete", "legacy", key="timezone")
        assert endpoint.key_kind == KeyKind.NAME

    def test_no_get_one(self):
        """Test that legacy has no get-one endpoint."""
        with pytest.raises(UnsupportedOperationError):
            resolve(ResourceKind.CATEGORY, Operation.GET, Generation.LEGACY, key="food")

    def test_transactions_by_account(self):
        """Test the legacy account-scoped transaction list."""
        endpoint = resolve(
            ResourceKind.TRANSACTION, Operation.LIST, Generation.LEGACY,
            key="chase_brian", scope=ListScope.ACCOUNT,
        )
        assert endpoint.path == "/api/transaction/account/select/chase_brian"

    def test_totals_use_raw_name(self):
        """Test that legacy totals are not canonicalized."""
        endpoint = resolve(
            ResourceKind.TOTALS, Operation.GET, Generation.LEGACY, key="Chase_Brian"
        )
        assert endpoint.path == "/api/transaction/account/totals/Chase_Brian"


class TestModernEndpoints:
    """Tests for the REST-conventional generation."""

    @pytest.mark.parametrize("kind", NAME_KEYED)
    def test_name_keyed_table(self, kind):
        """Test resources addressed by natural name."""
        r = kind.value
        gen = Generation.MODERN
        assert resolve(kind, Operation.CREATE, gen).path == f"/api/{r}"
        update = resolve(kind, Operation.UPDATE, gen, key="old")
        assert (update.path, update.method, update.key_kind) == (
            f"/api/{r}/old", "PUT", KeyKind.NAME,
        )
        assert resolve(kind, Operation.DELETE, gen, key="x").path == f"/api/{r}/x"
        assert resolve(kind, Operation.GET, gen, key="x").method == "GET"
        assert resolve(kind, Operation.LIST, gen).path == f"/api/{r}/active"

    def test_parameter_keyed_by_id(self):
        """Test that parameters are addressed by numeric id."""
        endpoint = resolve(ResourceKind.PARAMETER, Operation.UPDATE, Generation.MODERN, key=7)
        assert endpoint.path == "/api/parameter/7"
        assert endpoint.key_kind == KeyKind.ID

    @pytest.mark.parametrize("scope,path", [
        (ListScope.ACCOUNT, "/api/transaction/account/chase_brian"),
        (ListScope.CATEGORY, "/api/transaction/category/chase_brian"),
        (ListScope.DESCRIPTION, "/api/transaction/description/chase_brian"),
    ])
    def test_scoped_transaction_lists(self, scope, path):
        """Test parent-scoped transaction lists."""
        endpoint = resolve(
            "transaction", "list", "modern", key="chase_brian", scope=scope
        )
        assert endpoint.path == path

    def test_totals_use_canonical_name(self):
        """Test that modern totals canonicalize the account name."""
        endpoint = resolve(
            ResourceKind.TOTALS, Operation.GET, Generation.MODERN, key="Chase.Brian"
        )
        assert endpoint.path == "/api/transaction/account/totals/chasebrian"


class TestResolverRules:
    """Tests for rules shared by both generations."""

    def test_keys_are_one_path_segment(self):
        """Test that keys are percent-encoded."""
        endpoint = resolve("category", "delete", "modern", key="a/b c")
        assert endpoint.path == "/api/category/a%2Fb%20c"
        assert encode_key(12) == "12"

    @pytest.mark.parametrize("operation", [Operation.UPDATE, Operation.DELETE])
    def test_key_required(self, operation):
        """Test that update and delete need a key."""
        with pytest.raises(UnsupportedOperationError):
            resolve("category", operation, "modern")

    @pytest.mark.parametrize("operation", ["create", "update", "delete", "list"])
    def test_totals_read_only(self, operation):
        """Test that totals only support GET."""
        with pytest.raises(UnsupportedOperationError):
            resolve("totals", operation, "modern", key="a")

    def test_scope_only_for_transactions(self):
        """Test that scoped lists are transaction-only."""
        with pytest.raises(UnsupportedOperationError):
            resolve("category", "list", "modern", key="a", scope="account")

    def test_unknown_resource(self):
        """Test that unknown resources are rejected."""
        with pytest.raises(ValueError):
            resolve("budget", "list", "modern")

    @pytest.mark.parametrize("generation", ["legacy", "modern"])
    def test_resource_actions(self, generation):
        """Test that actions share one path across generations."""
        future = resolve("transaction", "create_future", generation)
        assert (future.method, future.path) == ("POST", "/api/transaction/future/insert")

        state = resolve("transaction", "update_state", generation, key="g-1", state="cleared")
        assert (state.method, state.path) == (
            "PUT", "/api/transaction/state/update/g-1/cleared",
        )

        deactivate = resolve("account", "deactivate", generation, key="Chase.Brian")
        assert (deactivate.method, deactivate.path) == (
            "PUT", "/api/account/deactivate/chasebrian",
        )

    def test_action_requires_support(self):
        """Test that actions exist only on the resources that enable them."""
        with pytest.raises(UnsupportedOperationError):
            resolve("category", "deactivate", "modern", key="food")
        with pytest.raises(UnsupportedOperationError):
            resolve("account", "update_state", "modern", key="a", state="cleared")

    def test_state_required(self):
        """Test that a state change needs the target state."""
        with pytest.raises(UnsupportedOperationError):
            resolve("transaction", "update_state", "modern", key="g-1")

    def test_resolver_is_pure(self):
        """Test that equal inputs give equal outputs."""
        first = resolve("account", "update", "legacy", key="a")
        second = resolve("account", "update", "legacy", key="a")
        assert first == second
