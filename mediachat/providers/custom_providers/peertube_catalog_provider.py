"""
PeerTube catalog provider.

Talks to the public REST API of a PeerTube instance:

* ``GET /api/v1/videos/{id}`` for metadata, encoding state and playable files
* ``GET /api/v1/videos/{id}/captions`` for caption tracks
* ``GET /api/v1/videos?count=N&sort=-publishedAt`` for related items
"""

import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import aiohttp
from loguru import logger

from ..base import CatalogProvider
from ...models import Asset, CaptionRef, MediaFile, RelatedItem
from ...utils.error_handler import convert_exceptions, ProviderException


class PeerTubeCatalogProvider(CatalogProvider):
    """Catalog provider backed by a PeerTube instance."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.base_url = config.get("base_url", "http://localhost:9000").rstrip("/") + "/"
        self.timeout = aiohttp.ClientTimeout(total=config.get("timeout", 30))
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self.config.get("api_token"):
                headers["Authorization"] = f"Bearer {self.config['api_token']}"
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)
        return self._session

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a JSON document; ``None`` on 404, ProviderException on other failures."""
        session = self._get_session()
        async with session.get(self._url(path), params=params) as response:
            if response.status == 404:
                return None
            if response.status != 200:
                raise ProviderException(
                    f"PeerTube request {path} failed with status {response.status}",
                    details={"status": response.status},
                )
            return await response.json()

    @convert_exceptions({aiohttp.ClientError: ProviderException, asyncio.TimeoutError: ProviderException})
    async def get_asset(self, asset_id: str) -> Optional[Asset]:
        payload = await self._get_json(f"/api/v1/videos/{asset_id}")
        if payload is None:
            logger.warning(f"Asset {asset_id} not found in catalog")
            return None

        captions_payload = await self._get_json(f"/api/v1/videos/{asset_id}/captions") or {}
        return self._asset_from_payload(payload, captions_payload.get("data", []), self.base_url)

    @convert_exceptions({aiohttp.ClientError: ProviderException, asyncio.TimeoutError: ProviderException})
    async def list_related(self, excluding_id: str, limit: int = 10) -> List[RelatedItem]:
        # fetch one extra so the current item can be dropped without coming up short
        payload = await self._get_json(
            "/api/v1/videos",
            params={"count": limit + 1, "sort": "-publishedAt"},
        ) or {}

        related = []
        for video in payload.get("data", []):
            if excluding_id in (str(video.get("id")), video.get("uuid"), video.get("shortUUID")):
                continue
            related.append(RelatedItem(
                id=str(video.get("uuid") or video.get("id")),
                title=video.get("name") or "",
                description=video.get("truncatedDescription") or video.get("description"),
                channel_name=(video.get("channel") or {}).get("displayName"),
            ))
        return related[:limit]

    async def fetch_caption(self, caption: CaptionRef) -> Optional[str]:
        session = self._get_session()
        try:
            async with session.get(self._url(caption.url)) as response:
                if response.status != 200:
                    logger.debug(f"Caption URL {caption.url} returned status {response.status}")
                    return None
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Error downloading caption {caption.url}: {e}")
            return None

    @staticmethod
    def _asset_from_payload(payload: Dict[str, Any], captions: List[Dict[str, Any]], base_url: str = "") -> Asset:
        """Normalize a PeerTube video document into an Asset."""
        files = []
        for playlist in payload.get("streamingPlaylists") or []:
            for item in playlist.get("files") or []:
                if item.get("fileUrl"):
                    files.append(MediaFile(
                        url=item["fileUrl"],
                        resolution=(item.get("resolution") or {}).get("id", 0),
                        kind="hls",
                    ))
            if not playlist.get("files") and playlist.get("playlistUrl"):
                files.append(MediaFile(url=playlist["playlistUrl"], resolution=0, kind="hls"))

        for item in payload.get("files") or []:
            if item.get("fileUrl"):
                files.append(MediaFile(
                    url=item["fileUrl"],
                    resolution=(item.get("resolution") or {}).get("id", 0),
                    kind="web",
                ))

        caption_refs = []
        for caption in captions:
            url = caption.get("fileUrl") or caption.get("captionPath")
            if not url:
                continue
            if not url.startswith(("http://", "https://")) and base_url:
                url = urljoin(base_url, url.lstrip("/"))
            caption_refs.append(CaptionRef(
                language=(caption.get("language") or {}).get("id", ""),
                url=url,
            ))

        state = payload.get("state")
        return Asset(
            id=str(payload.get("id")),
            uuid=payload.get("uuid") or str(payload.get("id")),
            title=payload.get("name") or "",
            description=payload.get("description"),
            channel_name=(payload.get("channel") or {}).get("displayName"),
            duration_seconds=float(payload.get("duration") or 0),
            state=state.get("id", 1) if isinstance(state, dict) else (state or 1),
            captions=caption_refs,
            files=files,
        )

    async def close(self):
        if self._session is not None and not self._session.closed:
            logger.info("Closing PeerTube catalog session")
            await self._session.close()
