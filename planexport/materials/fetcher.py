"""Texture byte fetching for data: and network URIs."""

import asyncio
import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote_to_bytes

import aiohttp
from PIL import Image, UnidentifiedImageError

from planexport.errors import TextureUnavailableError

logger = logging.getLogger(__name__)

PIL_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


@dataclass
class FetchedImage:
    """Raw image bytes and their best-known mime type."""

    data: bytes
    mime_type: Optional[str] = None


def guess_mime_type(uri: str) -> Optional[str]:
    """Guess a mime type from a data: header or a file extension in the URI."""
    if not uri:
        return None
    lower = uri.lower()
    if lower.startswith("data:"):
        header = lower[5:].split(",", 1)[0]
        mime = header.split(";", 1)[0]
        return mime or None
    if ".png" in lower:
        return "image/png"
    if ".jpg" in lower or ".jpeg" in lower:
        return "image/jpeg"
    return None


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Identify image bytes with Pillow; None when they are not a known image."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return PIL_MIME_TYPES.get(image.format or "")
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def read_data_uri(uri: str) -> FetchedImage:
    """
    Decode a ``data:`` URI in place.

    Raises:
        ValueError: If the URI is malformed or its base64 payload is invalid
    """
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("Invalid data URI")
    header, payload = uri[5:].split(",", 1)
    params = header.split(";")
    mime_type = params[0] or None
    if params[-1].lower() == "base64":
        try:
            data = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
    else:
        data = unquote_to_bytes(payload)
    return FetchedImage(data=data, mime_type=mime_type)


class TextureFetcher:
    """Fetches texture bytes, decoding data: URIs without touching the network."""

    def __init__(self, timeout: float = 20.0, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the fetcher.

        Args:
            timeout: Total seconds allowed per network fetch
            session: Optional externally owned aiohttp session
        """
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session if this fetcher created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "TextureFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def fetch(self, uri: Optional[str]) -> FetchedImage:
        """
        Fetch the bytes behind a texture URI.

        Raises:
            TextureUnavailableError: If the URI is missing, malformed or the fetch fails
        """
        if not isinstance(uri, str) or not uri:
            raise TextureUnavailableError(str(uri or ""), "Texture URI is missing")

        if uri.startswith("data:"):
            try:
                image = read_data_uri(uri)
            except ValueError as e:
                raise TextureUnavailableError(uri[:64], str(e)) from e
        else:
            image = await self._fetch_remote(uri)

        if image.mime_type is None:
            image.mime_type = sniff_mime_type(image.data)
        return image

    async def _fetch_remote(self, uri: str) -> FetchedImage:
        session = await self._get_session()
        logger.info(f"Fetching texture {uri}")
        try:
            async with session.get(uri, timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
                if response.status != 200:
                    raise TextureUnavailableError(uri, f"HTTP {response.status}")
                data = await response.read()
                content_type = response.headers.get("Content-Type")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TextureUnavailableError(uri, str(e) or type(e).__name__) from e

        mime_type = guess_mime_type(uri)
        if mime_type is None and content_type:
            mime_type = content_type.split(";", 1)[0].strip() or None
        return FetchedImage(data=data, mime_type=mime_type)
