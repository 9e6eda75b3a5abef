import json
from typing import Any, Dict, List

import httpx
import pytest  # type: ignore[reportMissingImports]

from storefront.commerce import CART_FIELDS, CommerceClient
from storefront.errors import CommerceAPIError, CommerceUnavailableError


class _Backend:
    """Records requests and answers from a route table."""

    def __init__(self, routes: Dict[tuple, Any]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(404, json={"type": "not_found", "message": f"{request.url.path} not found"})
        if callable(answer):
            return answer(request)
        status, body = answer
        return httpx.Response(status, json=body)


def _client(backend: _Backend, **kwargs) -> CommerceClient:
    return CommerceClient(
        "http://medusa.test/",
        publishable_key="pk_test",
        transport=httpx.MockTransport(backend),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_headers_and_cart_fields():
    backend = _Backend({("GET", "/store/carts/cart_1"): (200, {"cart": {"id": "cart_1"}})})
    client = _client(backend)
    client.set_auth_token("jwt-1")

    cart = await client.retrieve_cart("cart_1")

    request = backend.requests[0]
    assert cart == {"id": "cart_1"}
    assert request.headers["x-publishable-api-key"] == "pk_test"
    assert request.headers["authorization"] == "Bearer jwt-1"
    assert request.url.params["fields"] == CART_FIELDS
    await client.aclose()


@pytest.mark.asyncio
async def test_no_auth_header_when_signed_out():
    backend = _Backend({("GET", "/store/regions"): (200, {"regions": [{"id": "reg_ch"}]})})
    client = _client(backend)

    assert await client.list_regions() == [{"id": "reg_ch"}]
    assert "authorization" not in backend.requests[0].headers
    assert client.is_authenticated is False
    await client.aclose()


@pytest.mark.asyncio
async def test_error_status_carries_backend_message():
    backend = _Backend({
        ("POST", "/store/carts/cart_1/line-items"): (
            400,
            {"type": "not_allowed", "message": "Could not delete all payment sessions"},
        ),
    })
    client = _client(backend)

    with pytest.raises(CommerceAPIError) as exc_info:
        await client.create_line_item("cart_1", "variant_tee", 1)

    err = exc_info.value
    assert err.status_code == 400
    assert err.backend_message == "Could not delete all payment sessions"
    assert err.message == "Could not delete all payment sessions"
    assert json.loads(backend.requests[0].content) == {"variant_id": "variant_tee", "quantity": 1}
    await client.aclose()


@pytest.mark.asyncio
async def test_error_without_message():
    backend = _Backend({("POST", "/store/carts"): lambda request: httpx.Response(500, content=b"")})
    client = _client(backend)

    with pytest.raises(CommerceAPIError) as exc_info:
        await client.create_cart("reg_ch")

    assert exc_info.value.backend_message is None
    assert exc_info.value.message == "Commerce API error (HTTP 500)"
    await client.aclose()


@pytest.mark.asyncio
async def test_connection_failure_is_unavailable():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = CommerceClient("http://medusa.test", transport=httpx.MockTransport(refuse))

    with pytest.raises(CommerceUnavailableError):
        await client.list_regions()
    await client.aclose()


@pytest.mark.asyncio
async def test_payment_session_creates_collection_first():
    backend = _Backend({
        ("POST", "/store/payment-collections"): (200, {"payment_collection": {"id": "paycol_1"}}),
        ("POST", "/store/payment-collections/paycol_1/payment-sessions"): (
            200,
            {"payment_collection": {"id": "paycol_1", "payment_sessions": [{"provider_id": "pp_stripe_stripe"}]}},
        ),
    })
    client = _client(backend)

    collection = await client.initiate_payment_session("cart_1", "pp_stripe_stripe")

    assert collection["id"] == "paycol_1"
    assert [r.url.path for r in backend.requests] == [
        "/store/payment-collections",
        "/store/payment-collections/paycol_1/payment-sessions",
    ]
    assert json.loads(backend.requests[0].content) == {"cart_id": "cart_1"}
    assert json.loads(backend.requests[1].content) == {"provider_id": "pp_stripe_stripe"}
    await client.aclose()


@pytest.mark.asyncio
async def test_payment_session_with_existing_collection():
    backend = _Backend({
        ("POST", "/store/payment-collections/paycol_9/payment-sessions"): (200, {"payment_collection": {"id": "paycol_9"}}),
    })
    client = _client(backend)

    await client.initiate_payment_session("cart_1", "pp_system_default", payment_collection_id="paycol_9")

    assert len(backend.requests) == 1
    await client.aclose()


@pytest.mark.asyncio
async def test_promotions_delete_sends_body():
    backend = _Backend({("DELETE", "/store/carts/cart_1/promotions"): (200, {"cart": {"id": "cart_1"}})})
    client = _client(backend)

    result = await client.remove_promotions("cart_1", ["WELCOME10"])

    assert result == {"cart": {"id": "cart_1"}}
    assert json.loads(backend.requests[0].content) == {"promo_codes": ["WELCOME10"]}
    await client.aclose()


@pytest.mark.asyncio
async def test_delete_line_item_with_empty_body():
    backend = _Backend({
        ("DELETE", "/store/carts/cart_1/line-items/item_1"): lambda request: httpx.Response(200, content=b""),
    })
    client = _client(backend)

    assert await client.delete_line_item("cart_1", "item_1") == {}
    await client.aclose()


@pytest.mark.asyncio
async def test_login_returns_token():
    backend = _Backend({("POST", "/auth/customer/emailpass"): (200, {"token": "jwt-2"})})
    client = _client(backend)

    assert await client.login("lea@example.ch", "secret") == "jwt-2"
    await client.aclose()


@pytest.mark.asyncio
async def test_login_without_token_is_an_error():
    backend = _Backend({("POST", "/auth/customer/emailpass"): (200, {"location": "https://idp"})})
    client = _client(backend)

    with pytest.raises(CommerceAPIError):
        await client.login("lea@example.ch", "secret")
    await client.aclose()
