"""Shorten endpoint behavior tests."""

import pytest
from httpx import AsyncClient

from shortlinks.codec import HashCodec
from shortlinks.dependencies import ServiceManager
from shortlinks.enums import FailureCode
from shortlinks.exceptions import ReplyFailure


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient, codec: HashCodec) -> None:
    response = await client.post("/api/shorten", json={"url": "https://www.google.com"})
    assert response.status_code == 200
    data = response.json()
    assert data["original"] == "https://www.google.com"
    assert data["created"] is True
    assert data["shortened"] == f"http://sho.rt/{data['token']}"
    assert codec.reverse(data["token"]) == data["id"]


@pytest.mark.asyncio
async def test_shorten_same_url_twice_returns_same_token(client: AsyncClient) -> None:
    first = (await client.post("/api/shorten", json={"url": "https://www.github.com"})).json()
    second = (await client.post("/api/shorten", json={"url": "https://www.github.com"})).json()
    assert second["token"] == first["token"]
    assert second["created"] is False


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    urls = [
        "https://www.google.com",
        "https://www.github.com",
        "https://www.python.org",
    ]
    tokens = set()
    for url in urls:
        response = await client.post("/api/shorten", json={"url": url})
        assert response.status_code == 200
        tokens.add(response.json()["token"])
    assert len(tokens) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["not-a-url", "", "ftp://files.example.com/a.txt", "javascript:alert(1)"])
async def test_shorten_invalid_url(client: AsyncClient, url: str) -> None:
    response = await client.post("/api/shorten", json={"url": url})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_missing_url(client: AsyncClient) -> None:
    response = await client.post("/api/shorten", json={})
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("code", "status"),
    [(FailureCode.RESOURCE_UNAVAILABLE, 503), (FailureCode.INTERNAL_ERROR, 500)],
)
async def test_shorten_store_failures(
    client: AsyncClient, manager: ServiceManager, monkeypatch: pytest.MonkeyPatch, code: FailureCode, status: int
) -> None:
    async def failing_request(address, payload, timeout=None):
        raise ReplyFailure(code, "store said no")

    monkeypatch.setattr(manager.gateway, "request", failing_request)
    response = await client.post("/api/shorten", json={"url": "https://www.python.org"})
    assert response.status_code == status
