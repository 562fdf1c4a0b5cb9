# link-shortener/tests/test_redirect.py
import asyncio
from unittest.mock import patch

import httpx
import pytest
from httpx import AsyncClient

from conftest import auth_headers
from models import Link

CHROME_ON_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


async def create_link(client, headers, url="https://example.com/a", **extra):
    response = await client.post("/", json={"url": url, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_end_to_end_register_login_shorten_redirect(client: AsyncClient):
    await client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "alice@example.com", "password": "secret123"},
    )
    login = await client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}
    )
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    created = await client.post("/", json={"url": "https://example.com/a"}, headers=headers)
    assert created.status_code == 201
    code = created.json()["shortCode"]
    assert len(code) == 7

    response = await client.get(f"/{code}", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://example.com/a"

    link = await Link.find_one(Link.short_code == code)
    assert link.click_count == 1


@pytest.mark.asyncio
async def test_redirect_not_found(client: AsyncClient):
    response = await client.get("/nonexistent", follow_redirects=False)
    assert response.status_code == 404
    assert response.json()["detail"] == "URL not found"


@pytest.mark.asyncio
async def test_redirect_records_click_event(client: AsyncClient, geolocator):
    headers = await auth_headers(client)
    data = await create_link(client, headers)

    response = await client.get(
        f"/{data['shortCode']}",
        headers={
            "X-Forwarded-For": "203.0.113.7, 10.0.0.1",
            "User-Agent": CHROME_ON_WINDOWS,
            "Referer": "https://news.example.org/",
        },
        follow_redirects=False,
    )
    assert response.status_code == 302

    link = await Link.find_one(Link.short_code == data["shortCode"])
    assert link.click_count == 1
    assert len(link.click_events) == 1
    event = link.click_events[0]
    assert event.ip == "203.0.113.7"
    assert (event.city, event.region, event.country) == ("Berlin", "Berlin", "Germany")
    assert event.browser == "Chrome"
    assert event.os == "Windows"
    assert event.device == "desktop"
    assert event.referrer == "https://news.example.org/"
    assert geolocator.calls == ["203.0.113.7"]


@pytest.mark.asyncio
async def test_click_count_matches_events(client: AsyncClient):
    headers = await auth_headers(client)
    data = await create_link(client, headers)

    for _ in range(3):
        await client.get(f"/{data['shortCode']}", follow_redirects=False)

    link = await Link.find_one(Link.short_code == data["shortCode"])
    assert link.click_count == 3
    assert len(link.click_events) == 3


@pytest.mark.asyncio
async def test_redirect_survives_geolocation_failure(client: AsyncClient, geolocator):
    geolocator.error = httpx.ConnectTimeout("timed out")
    headers = await auth_headers(client)
    data = await create_link(client, headers)

    response = await client.get(f"/{data['shortCode']}", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://example.com/a"

    link = await Link.find_one(Link.short_code == data["shortCode"])
    assert link.click_count == 1
    assert len(link.click_events) == 1
    event = link.click_events[0]
    assert (event.city, event.region, event.country) == ("Unknown", "Unknown", "Unknown")


@pytest.mark.asyncio
async def test_redirect_survives_click_recording_failure(client: AsyncClient):
    headers = await auth_headers(client)
    data = await create_link(client, headers)

    with patch("links.LinkService.record_click", side_effect=RuntimeError("db down")):
        response = await client.get(f"/{data['shortCode']}", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://example.com/a"


@pytest.mark.asyncio
async def test_redirect_is_public_and_uses_custom_alias(client: AsyncClient):
    headers = await auth_headers(client)
    await create_link(client, headers, url="https://example.com/promo", customUrl="promo")

    response = await client.get("/promo", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://example.com/promo"


@pytest.mark.asyncio
async def test_redirect_normalizes_ipv6_mapped_address(client: AsyncClient, geolocator):
    headers = await auth_headers(client)
    data = await create_link(client, headers)

    await client.get(
        f"/{data['shortCode']}",
        headers={"X-Forwarded-For": "::ffff:198.51.100.4"},
        follow_redirects=False,
    )
    link = await Link.find_one(Link.short_code == data["shortCode"])
    assert link.click_events[0].ip == "198.51.100.4"


@pytest.mark.asyncio
async def test_concurrent_redirects_do_not_lose_clicks(client: AsyncClient):
    headers = await auth_headers(client)
    data = await create_link(client, headers)

    responses = await asyncio.gather(
        *(client.get(f"/{data['shortCode']}", follow_redirects=False) for _ in range(10))
    )

    assert all(r.status_code == 302 for r in responses)
    link = await Link.find_one(Link.short_code == data["shortCode"])
    assert link.click_count == 10
    assert len(link.click_events) == 10
