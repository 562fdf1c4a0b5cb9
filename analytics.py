# link-shortener/analytics.py
import ipaddress
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from user_agents import parse as parse_user_agent

from models import UNKNOWN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMetadata:
    """The parts of a redirect request that end up in a click event."""

    remote_addr: Optional[str] = None
    forwarded_for: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


@dataclass(frozen=True)
class Location:
    city: str = UNKNOWN
    region: str = UNKNOWN
    country: str = UNKNOWN


@dataclass(frozen=True)
class DeviceInfo:
    browser: Optional[str] = None
    os: Optional[str] = None
    device: Optional[str] = None


def normalize_ip(ip: str) -> str:
    """Strips an IPv6-mapped prefix (::ffff:1.2.3.4 -> 1.2.3.4)."""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return ip
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return str(address.ipv4_mapped)
    return str(address)


def client_ip(metadata: RequestMetadata) -> str:
    if metadata.forwarded_for:
        first = metadata.forwarded_for.split(",")[0].strip()
        if first:
            return normalize_ip(first)
    if metadata.remote_addr:
        return normalize_ip(metadata.remote_addr)
    return "0.0.0.0"


def is_public_ip(ip: str) -> bool:
    try:
        return ipaddress.ip_address(ip).is_global
    except ValueError:
        return False


def device_info(user_agent: Optional[str]) -> DeviceInfo:
    if not user_agent:
        return DeviceInfo()

    ua = parse_user_agent(user_agent)
    if ua.is_bot:
        device = "bot"
    elif ua.is_tablet:
        device = "tablet"
    elif ua.is_mobile:
        device = "mobile"
    elif ua.is_pc:
        device = "desktop"
    else:
        device = "other"
    return DeviceInfo(browser=ua.browser.family, os=ua.os.family, device=device)


class GeoLocator:
    """
    Looks up an IP address against an ip-api.com compatible endpoint.

    The httpx client is shared across requests and owned by the caller, which
    also sets its timeout. Private, loopback and malformed addresses resolve
    to Unknown without a network call. Transport errors and timeouts
    propagate as httpx errors; callers decide how to degrade.
    """

    def __init__(self, api_url: str, client: httpx.AsyncClient):
        self.api_url = api_url
        self.client = client

    async def lookup(self, ip: str) -> Location:
        if not is_public_ip(ip):
            return Location()

        response = await self.client.get(self.api_url.format(ip=ip))
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict) or data.get("status") != "success":
            logger.info("Geolocation lookup for %s returned no result", ip)
            return Location()

        return Location(
            city=data.get("city") or UNKNOWN,
            region=data.get("regionName") or UNKNOWN,
            country=data.get("country") or UNKNOWN,
        )
