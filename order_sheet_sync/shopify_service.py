"""
Shopify order stores.

Two interchangeable implementations of the same two lookups:

- ShopifyRestOrderStore: REST only; name search pages through recent
  orders and keeps the ones passing the fuzzy name pre-filter.
- ShopifyGraphQLOrderStore: Admin GraphQL search, falling back to the REST
  search when GraphQL errors out.

Both return orders most-recent-first and never decide the final match.
"""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import NetworkError
from .models import LineItem, Order
from .name_matcher import fuzzy_name_matches

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 25

ORDER_SEARCH_QUERY = """
query SearchOrders($q: String!, $first: Int!) {
  orders(first: $first, query: $q, sortKey: CREATED_AT, reverse: true) {
    edges {
      node {
        id
        name
        createdAt
        discountCodes
        customer { firstName lastName }
        shippingAddress { firstName lastName name }
        billingAddress { firstName lastName name }
        lineItems(first: 50) { edges { node { title quantity } } }
        fulfillments(first: 1) { trackingInfo(first: 1) { number url } }
      }
    }
  }
}
"""


def create_session(max_retries: int = 3) -> requests.Session:
    session = requests.Session()
    retry_strategy = Retry(
        total=max_retries,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["HEAD", "GET", "OPTIONS"],
        backoff_factor=1,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class ShopifyRestOrderStore:
    """Order store on the Shopify Admin REST API."""

    def __init__(self, shop_domain: str, access_token: str, api_version: str = "2023-10",
                 search_limit: int = 250, session: Optional[requests.Session] = None):
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        self.search_limit = search_limit
        self.session = session or create_session()

    @classmethod
    def from_settings(cls, settings, session=None):
        return cls(settings.shop_domain, settings.access_token, settings.api_version,
                   settings.search_limit, session=session)

    def _get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        try:
            response = self.session.get(
                f"{self.base_url}{endpoint}",
                headers=self.headers,
                params=params or {},
                timeout=HTTP_TIMEOUT,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as err:
            raise NetworkError(f"Shopify API error on {endpoint}: {err}")

    def get_orders(self, limit: int = 10, status: str = "any") -> list[dict]:
        """Raw recent orders, newest first."""
        data = self._get("/orders.json", {"limit": limit, "status": status})
        return data.get("orders", [])

    def get_by_identifier(self, identifier: str) -> Optional[Order]:
        """Look an order up by its name ("#TCO10842"), or by numeric id."""
        identifier = identifier.strip()
        if identifier.isdigit():
            data = self._get(f"/orders/{identifier}.json")
            return Order.from_shopify(data["order"]) if data.get("order") else None

        data = self._get("/orders.json", {"name": identifier, "status": "any"})
        for payload in data.get("orders", []):
            if payload.get("name") == identifier:
                return Order.from_shopify(payload)
        return None

    def get_by_identifiers(self, identifiers: list[str]) -> list[Order]:
        orders = []
        for identifier in identifiers:
            try:
                order = self.get_by_identifier(str(identifier))
            except NetworkError as err:
                logger.error("Could not fetch order %s: %s", identifier, err)
                continue
            if order is not None:
                orders.append(order)
        return orders

    def search_by_customer_name(self, name: str) -> list[Order]:
        payloads = self.get_orders(limit=self.search_limit)
        orders = [Order.from_shopify(p) for p in payloads]
        return [o for o in orders if fuzzy_name_matches(name, o)]

    def test_connection(self) -> dict:
        try:
            shop = self._get("/shop.json")["shop"]
        except (NetworkError, KeyError) as err:
            return {"success": False, "error": str(err)}
        return {
            "success": True,
            "shop": {"name": shop.get("name"), "domain": shop.get("domain"), "currency": shop.get("currency")},
        }


class ShopifyGraphQLOrderStore(ShopifyRestOrderStore):
    """Searches by name through GraphQL; REST is the fallback and the lookup path."""

    search_size = 50

    def _graphql(self, query: str, variables: dict) -> dict:
        try:
            response = self.session.post(
                f"{self.base_url}/graphql.json",
                headers=self.headers,
                json={"query": query, "variables": variables},
                timeout=HTTP_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as err:
            raise NetworkError(f"Shopify GraphQL error: {err}")
        if data.get("errors"):
            raise NetworkError(f"Shopify GraphQL error: {data['errors']}")
        return data.get("data") or {}

    def search_by_customer_name(self, name: str) -> list[Order]:
        query = '"{}"'.format(name.strip().replace('"', ""))
        try:
            data = self._graphql(ORDER_SEARCH_QUERY, {"q": query, "first": self.search_size})
        except NetworkError as err:
            logger.warning("GraphQL search failed for %r, falling back to REST: %s", name, err)
            return super().search_by_customer_name(name)

        edges = (data.get("orders") or {}).get("edges") or []
        orders = [order_from_graphql(edge["node"]) for edge in edges]
        return [o for o in orders if fuzzy_name_matches(name, o)]


def _graphql_name(record: Optional[dict]) -> Optional[str]:
    if not record:
        return None
    name = f"{record.get('firstName') or ''} {record.get('lastName') or ''}".strip()
    return name or record.get("name") or None


def order_from_graphql(node: dict) -> Order:
    tracking_number = ""
    tracking_url = None
    for fulfillment in node.get("fulfillments") or []:
        for info in fulfillment.get("trackingInfo") or []:
            tracking_number = info.get("number") or ""
            tracking_url = info.get("url")
            break
        break

    line_items = [
        LineItem(title=edge["node"].get("title") or "", quantity=int(edge["node"].get("quantity") or 0))
        for edge in ((node.get("lineItems") or {}).get("edges") or [])
    ]
    return Order(
        identifier=node.get("name") or "",
        customer_name=_graphql_name(node.get("customer")),
        shipping_name=_graphql_name(node.get("shippingAddress")),
        billing_name=_graphql_name(node.get("billingAddress")),
        line_items=line_items,
        tracking_number=tracking_number,
        tracking_url=tracking_url,
        discount_codes=list(node.get("discountCodes") or []),
        created_at=node.get("createdAt"),
        platform_id=node.get("id"),
    )


def create_order_store(settings, session=None):
    if settings.search_mode == "rest":
        return ShopifyRestOrderStore.from_settings(settings, session=session)
    return ShopifyGraphQLOrderStore.from_settings(settings, session=session)
