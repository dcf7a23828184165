import asyncio
import logging
from typing import Any, Dict, Optional

import cloudinary.api
from cloudinary.exceptions import Error as CloudinaryError, NotFound
from redis.exceptions import RedisError
from fastapi import Depends

from app.core.config import (
    CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET, IMAGE_CACHE_TTL,
)
from app.db.redis_client import get_redis

logger = logging.getLogger(__name__)

RESOURCE_TYPES = ("image", "video")
LOOKUP_TIMEOUT = 10


class ImageResolver:
    """
    Turns an image reference into a deliverable URL.

    - http(s) URLs are returned unchanged.
    - Anything else is treated as a Cloudinary public ID and looked up through
      the Admin API (image first, then video) when credentials are configured.
    - Successful lookups are cached in Redis for `cache_ttl` seconds.

    Lookup failures return None; callers turn that into a warning.
    """

    def __init__(
        self,
        redis=None,
        cloud_name: Optional[str] = CLOUDINARY_CLOUD_NAME,
        api_key: Optional[str] = CLOUDINARY_API_KEY,
        api_secret: Optional[str] = CLOUDINARY_API_SECRET,
        cache_ttl: int = IMAGE_CACHE_TTL,
    ):
        self.redis = redis
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.cache_ttl = cache_ttl

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    async def resolve_url(self, reference: Any) -> Optional[str]:
        if not isinstance(reference, str) or not reference.strip():
            return None
        reference = reference.strip()

        if reference.startswith(("http://", "https://")):
            return reference

        if not self.configured:
            logger.info(f"Cloudinary not configured, cannot resolve image reference '{reference}'")
            return None

        cache_key = f"image:ref:{reference}"
        cached = await self._cache_get(cache_key)
        if cached:
            return cached

        url = await self._lookup(reference)
        if url:
            await self._cache_set(cache_key, url)
        return url

    async def resolve_object(self, image: Any) -> Optional[Dict[str, Any]]:
        """
        Accepts a bare reference or `{url, publicId, caption, isHero, order}`.
        Returns the same shape with a resolved `url`, or None.
        """
        if isinstance(image, str):
            url = await self.resolve_url(image)
            if not url:
                return None
            return {
                "url": url,
                "publicId": None if image.strip().startswith(("http://", "https://")) else image.strip(),
                "caption": "",
                "isHero": False,
                "order": 0,
            }

        if not isinstance(image, dict):
            return None

        reference = image.get("url") or image.get("publicId")
        url = await self.resolve_url(reference)
        if not url:
            return None
        return {
            "url": url,
            "publicId": image.get("publicId"),
            "caption": image.get("caption") or "",
            "isHero": bool(image.get("isHero", False)),
            "order": image.get("order") or 0,
        }

    # --- Cloudinary Admin API (blocking SDK, run off the event loop) ---
    async def _lookup(self, public_id: str) -> Optional[str]:
        for resource_type in RESOURCE_TYPES:
            try:
                resource = await asyncio.to_thread(
                    cloudinary.api.resource,
                    public_id,
                    resource_type=resource_type,
                    cloud_name=self.cloud_name,
                    api_key=self.api_key,
                    api_secret=self.api_secret,
                    timeout=LOOKUP_TIMEOUT,
                )
            except NotFound:
                continue
            except (CloudinaryError, OSError) as e:
                logger.warning(f"Cloudinary lookup failed for '{public_id}' ({resource_type}): {e}")
                continue
            url = resource.get("secure_url")
            if url:
                return url
        logger.info(f"Cloudinary resource not found: {public_id}")
        return None

    # --- Redis cache (best effort) ---
    async def _cache_get(self, key: str) -> Optional[str]:
        if self.redis is None:
            return None
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Image cache read failed: {e}")
            return None
        if isinstance(value, bytes):
            value = value.decode()
        return value

    async def _cache_set(self, key: str, url: str) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(key, url, ex=self.cache_ttl)
        except RedisError as e:
            logger.warning(f"Image cache write failed: {e}")


async def resolve_many(resolver: ImageResolver, images) -> list:
    """Resolve image objects concurrently; an exception counts as unresolved."""
    results = await asyncio.gather(
        *(resolver.resolve_object(image) for image in images), return_exceptions=True
    )
    resolved = []
    for image, result in zip(images, results):
        if isinstance(result, Exception):
            logger.warning(f"Image resolution raised for {image!r}: {result}")
            result = None
        resolved.append(result)
    return resolved


def get_image_resolver(redis=Depends(get_redis)) -> ImageResolver:
    return ImageResolver(redis=redis)
