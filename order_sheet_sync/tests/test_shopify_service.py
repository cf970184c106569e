"""Tests for the Shopify order stores with a stubbed requests session."""

import pytest
import requests

from order_sheet_sync.config import Settings
from order_sheet_sync.errors import NetworkError
from order_sheet_sync.shopify_service import (
    ShopifyGraphQLOrderStore,
    ShopifyRestOrderStore,
    create_order_store,
    order_from_graphql,
)


def rest_order(name, first, last, tracking=None):
    return {
        "id": 1,
        "name": name,
        "shipping_address": {"first_name": first, "last_name": last},
        "line_items": [{"title": "Débardeur Blanc", "quantity": 1}],
        "fulfillments": [{"tracking_number": tracking}] if tracking else [],
    }


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, get=None, post=None):
        self.get_responses = list(get or [])
        self.post_responses = list(post or [])
        self.requests = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.requests.append(("GET", url, params))
        return self._next(self.get_responses)

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append(("POST", url, json))
        return self._next(self.post_responses)

    def _next(self, responses):
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def rest_store(session):
    return ShopifyRestOrderStore("shop.myshopify.com", "token", session=session)


class TestRestStore:

    def test_lookup_by_order_name(self):
        session = FakeSession(get=[FakeResponse({"orders": [rest_order("#TCO500", "Jane", "Doe", "1Z")]})])
        order = rest_store(session).get_by_identifier("#TCO500")

        assert order.identifier == "#TCO500"
        assert order.tracking_number == "1Z"
        method, url, params = session.requests[0]
        assert url == "https://shop.myshopify.com/admin/api/2023-10/orders.json"
        assert params == {"name": "#TCO500", "status": "any"}

    def test_lookup_not_found(self):
        session = FakeSession(get=[FakeResponse({"orders": [rest_order("#TCO5001", "Jane", "Doe")]})])
        assert rest_store(session).get_by_identifier("#TCO500") is None

    def test_lookup_by_numeric_id(self):
        session = FakeSession(get=[FakeResponse({"order": rest_order("#TCO500", "Jane", "Doe")})])
        order = rest_store(session).get_by_identifier("450789469")
        assert order.identifier == "#TCO500"
        assert session.requests[0][1].endswith("/orders/450789469.json")

    def test_search_applies_fuzzy_pre_filter(self):
        session = FakeSession(get=[FakeResponse({"orders": [
            rest_order("#TCO3", "Jane", "Doe-Martin"),
            rest_order("#TCO2", "John", "Smith"),
            rest_order("#TCO1", "Jane", "Doe"),
        ]})])
        found = rest_store(session).search_by_customer_name("Jane Doe")
        assert [o.identifier for o in found] == ["#TCO3", "#TCO1"]
        assert session.requests[0][2] == {"limit": 250, "status": "any"}

    def test_request_errors_become_network_errors(self):
        session = FakeSession(get=[requests.ConnectionError("down")])
        with pytest.raises(NetworkError):
            rest_store(session).get_by_identifier("#TCO1")

    def test_http_status_errors(self):
        session = FakeSession(get=[FakeResponse({}, status=401)])
        with pytest.raises(NetworkError):
            rest_store(session).get_orders()

    def test_get_by_identifiers_skips_failures(self):
        session = FakeSession(get=[
            requests.Timeout("slow"),
            FakeResponse({"orders": [rest_order("#TCO2", "Jane", "Doe")]}),
        ])
        orders = rest_store(session).get_by_identifiers(["#TCO1", "#TCO2"])
        assert [o.identifier for o in orders] == ["#TCO2"]

    def test_connection(self):
        session = FakeSession(get=[FakeResponse({"shop": {"name": "TCO", "domain": "tco.fr", "currency": "EUR"}})])
        result = rest_store(session).test_connection()
        assert result == {"success": True, "shop": {"name": "TCO", "domain": "tco.fr", "currency": "EUR"}}


GRAPHQL_NODE = {
    "id": "gid://shopify/Order/1",
    "name": "#TCO900",
    "createdAt": "2024-05-01T00:00:00Z",
    "discountCodes": ["WELCOME"],
    "customer": {"firstName": "Jane", "lastName": "Doe"},
    "shippingAddress": {"firstName": "Jane", "lastName": "Doe", "name": "Jane Doe"},
    "billingAddress": None,
    "lineItems": {"edges": [{"node": {"title": "Thermal Noir", "quantity": 2}}]},
    "fulfillments": [{"trackingInfo": [{"number": "1ZGQL", "url": "https://track/1ZGQL"}]}],
}


class TestGraphQLStore:

    def store(self, session):
        return ShopifyGraphQLOrderStore("shop.myshopify.com", "token", session=session)

    def test_search(self):
        session = FakeSession(post=[FakeResponse({"data": {"orders": {"edges": [{"node": GRAPHQL_NODE}]}}})])
        found = self.store(session).search_by_customer_name("Jane Doe")

        assert [o.identifier for o in found] == ["#TCO900"]
        method, url, body = session.requests[0]
        assert url.endswith("/graphql.json")
        assert body["variables"]["q"] == '"Jane Doe"'

    def test_graphql_errors_fall_back_to_rest(self):
        session = FakeSession(
            post=[FakeResponse({"errors": [{"message": "Throttled"}]})],
            get=[FakeResponse({"orders": [rest_order("#TCO1", "Jane", "Doe")]})],
        )
        found = self.store(session).search_by_customer_name("Jane Doe")
        assert [o.identifier for o in found] == ["#TCO1"]
        assert [r[0] for r in session.requests] == ["POST", "GET"]

    def test_node_parsing(self):
        order = order_from_graphql(GRAPHQL_NODE)
        assert order.tracking_number == "1ZGQL"
        assert order.billing_name is None
        assert order.line_items[0].quantity == 2
        assert order.discount_codes == ["WELCOME"]


class TestStoreSelection:

    def settings(self, mode):
        return Settings(shop_domain="shop", access_token="t", spreadsheet_id="s",
                        credentials_json="{}", search_mode=mode)

    def test_modes(self):
        assert type(create_order_store(self.settings("rest"), session=FakeSession())) is ShopifyRestOrderStore
        assert isinstance(create_order_store(self.settings("graphql"), session=FakeSession()), ShopifyGraphQLOrderStore)
