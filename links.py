# link-shortener/links.py
import logging
import secrets
import string
from typing import List, Optional, Tuple

import httpx
from beanie import PydanticObjectId
from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from analytics import GeoLocator, Location, RequestMetadata, client_ip, device_info
from config import Settings
from errors import Conflict, Forbidden, InternalError, NotFound
from models import ClickEvent, Link
from qrcodes import render_qr_code
from validators import validate_custom_alias, validate_full_url

logger = logging.getLogger(__name__)

# URL-safe alphabet, same as nanoid's default
ALPHABET = string.ascii_letters + string.digits + "_-"
MAX_CODE_ATTEMPTS = 5


def generate_short_code(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class LinkService:
    def __init__(self, settings: Settings, geolocator: GeoLocator):
        self.settings = settings
        self.geolocator = geolocator

    async def create(
        self,
        owner_id: PydanticObjectId,
        full_url: str,
        custom_alias: Optional[str] = None,
    ) -> Tuple[Link, bool]:
        """
        Returns (link, created). An existing link for the same owner and URL
        is returned unchanged with created=False.
        """
        full_url = validate_full_url(full_url)
        if custom_alias is not None:
            custom_alias = validate_custom_alias(
                custom_alias,
                self.settings.ALIAS_MIN_LENGTH,
                self.settings.ALIAS_MAX_LENGTH,
            )
            if await Link.find_one(Link.short_code == custom_alias):
                raise Conflict("Custom URL is already taken.")

        existing = await self._find_owned(owner_id, full_url)
        if existing:
            logger.info("Short URL already existed: '%s' for URL: %s", existing.short_code, full_url[:50])
            return existing, False

        for attempt in range(MAX_CODE_ATTEMPTS):
            short_code = custom_alias or generate_short_code(self.settings.SHORT_CODE_LENGTH)
            if not custom_alias and await Link.find_one(Link.short_code == short_code):
                logger.info("Short code collision on attempt %d/%d", attempt + 1, MAX_CODE_ATTEMPTS)
                continue

            link = Link(
                full_url=full_url,
                short_code=short_code,
                owner_id=owner_id,
                qr_code=await self._qr_code(short_code),
            )
            try:
                await link.insert()
            except DuplicateKeyError:
                # Lost a race: either the same owner created this URL
                # concurrently or someone else took the code.
                existing = await self._find_owned(owner_id, full_url)
                if existing:
                    return existing, False
                if custom_alias is not None:
                    raise Conflict("Custom URL is already taken.")
                logger.info("Short code collision on insert, attempt %d/%d", attempt + 1, MAX_CODE_ATTEMPTS)
                continue

            logger.info("Shortened %s to %s", full_url[:50], short_code)
            return link, True

        raise InternalError(f"Failed to generate a unique short code after {MAX_CODE_ATTEMPTS} attempts")

    async def resolve(self, short_code: str) -> Link:
        link = await Link.find_one(Link.short_code == short_code)
        if link is None:
            raise NotFound()
        return link

    async def record_click(self, link: Link, metadata: RequestMetadata) -> ClickEvent:
        ip = client_ip(metadata)
        try:
            location = await self.geolocator.lookup(ip)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geolocation fetch failed for %s: %s", ip, e)
            location = Location()

        device = device_info(metadata.user_agent)
        event = ClickEvent(
            ip=ip,
            city=location.city,
            region=location.region,
            country=location.country,
            browser=device.browser,
            os=device.os,
            device=device.device,
            referrer=metadata.referrer,
        )
        # Single atomic update keeps click_count == len(click_events)
        await Link.find_one(Link.id == link.id).update(
            {
                "$inc": {"click_count": 1},
                "$push": {"click_events": event.model_dump()},
            }
        )
        return event

    async def list_for_owner(self, owner_id: PydanticObjectId) -> List[Link]:
        return await Link.find(Link.owner_id == owner_id).sort("-created_at", "-_id").to_list()

    async def delete(self, link_id: str, requesting_user_id: PydanticObjectId) -> None:
        link = await self._get_owned(link_id, requesting_user_id)
        await link.delete()
        logger.info("Deleted link %s (%s)", link.id, link.short_code)

    async def get_analytics(self, link_id: str, requesting_user_id: PydanticObjectId) -> Link:
        return await self._get_owned(link_id, requesting_user_id)

    async def _get_owned(self, link_id: str, user_id: PydanticObjectId) -> Link:
        if not PydanticObjectId.is_valid(link_id):
            raise NotFound()
        link = await Link.get(PydanticObjectId(link_id))
        if link is None:
            raise NotFound()
        if link.owner_id != user_id:
            raise Forbidden()
        return link

    async def _find_owned(self, owner_id: PydanticObjectId, full_url: str) -> Optional[Link]:
        return await Link.find_one(Link.owner_id == owner_id, Link.full_url == full_url)

    async def _qr_code(self, short_code: str) -> Optional[str]:
        if not self.settings.QR_ENABLED:
            return None
        return await run_in_threadpool(render_qr_code, self.settings.short_url(short_code))
