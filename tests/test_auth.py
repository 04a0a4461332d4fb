import asyncio
import json

import httpx
import pytest

from dremioclone.core.auth import AuthError, DremioConnector, _sanitize_host, make_connection
from dremioclone.core.models import Login


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("dremio.local", "dremio.local"),
        ("https://dremio.example.com:9047/ui/", "dremio.example.com"),
        ("  10.0.0.5:9047 ", "10.0.0.5"),
        ("http://dremio/", "dremio"),
    ],
)
def test_sanitize_host(raw, expected):
    assert _sanitize_host(raw) == expected


def test_make_connection_rejects_empty_host():
    with pytest.raises(ValueError):
        make_connection("https://")


def test_make_connection_keeps_port_and_ssl():
    conn = make_connection("dremio.local", 443, True)

    assert conn.base_url == "https://dremio.local:443"


def test_session_yields_logged_in_api():
    def handler(request):
        if request.url.path == "/apiv2/login":
            return httpx.Response(200, json={"token": "t"})
        assert request.headers["Authorization"] == "_dremiot"
        return httpx.Response(200, json={"data": [{"name": "pg"}]})

    connector = DremioConnector(transport=httpx.MockTransport(handler))

    async def go():
        async with connector.session(make_connection("h"), Login("admin", "pw")) as api:
            return await api.get_sources()

    assert asyncio.run(go()) == [{"name": "pg"}]


def test_rejected_login_raises_auth_error():
    def handler(request):
        return httpx.Response(401, json={"errorMessage": "Invalid username or password"})

    connector = DremioConnector(transport=httpx.MockTransport(handler))

    async def go():
        async with connector.session(make_connection("h"), Login("admin", "bad")):
            pass

    with pytest.raises(AuthError, match="admin.*rejected"):
        asyncio.run(go())


def test_unreachable_cluster_raises_auth_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    connector = DremioConnector(transport=httpx.MockTransport(handler))

    async def go():
        async with connector.session(make_connection("h"), Login("admin", "pw")):
            pass

    with pytest.raises(AuthError, match="Could not log in"):
        asyncio.run(go())


def test_create_first_user_puts_bootstrap_request():
    sent = []

    def handler(request):
        sent.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={})

    connector = DremioConnector(transport=httpx.MockTransport(handler))

    asyncio.run(
        connector.create_first_user(make_connection("h"), {"userName": "admin"}, "pw")
    )

    assert sent == [
        ("PUT", "/apiv2/bootstrap/firstuser", {"userName": "admin", "password": "pw"})
    ]
