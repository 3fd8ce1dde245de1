from __future__ import annotations

import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote_to_bytes, urlparse

import httpx
from PIL import Image

from auditflow.config import LOGO_TIMEOUT_SECONDS, MAX_LOGO_BYTES, USER_AGENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogoData:
    data: bytes
    width: int
    height: int


def fit_logo(width: float, height: float, max_width: float, max_height: float) -> tuple[float, float]:
    """Scale (width, height) into the box keeping the aspect ratio; never enlarges."""
    if width <= 0 or height <= 0:
        return 0.0, 0.0
    ratio = min(max_width / width, max_height / height, 1.0)
    return width * ratio, height * ratio


def decode_image(raw: bytes) -> LogoData:
    with Image.open(io.BytesIO(raw)) as img:
        img.load()
        converted = img if img.mode in ("RGB", "RGBA") else img.convert("RGBA")
        out = io.BytesIO()
        converted.save(out, format="PNG")
        return LogoData(data=out.getvalue(), width=converted.width, height=converted.height)


def _decode_data_url(ref: str) -> bytes:
    header, sep, payload = ref.partition(",")
    if not sep:
        raise ValueError("malformed data URL")
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return unquote_to_bytes(payload)


class LogoFetcher:
    def __init__(
        self,
        timeout_s: float = LOGO_TIMEOUT_SECONDS,
        allow_files: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_s = timeout_s
        self.allow_files = allow_files
        self.transport = transport

    async def fetch_logo(self, ref: Optional[str]) -> Optional[LogoData]:
        if not ref:
            return None
        try:
            raw = await asyncio.wait_for(self._read(ref), timeout=self.timeout_s)
            if len(raw) > MAX_LOGO_BYTES:
                raise ValueError(f"logo is {len(raw)} bytes, limit is {MAX_LOGO_BYTES}")
            logo = decode_image(raw)
        except Exception as exc:
            logger.warning("Logo unavailable, using text header: %s: %s", type(exc).__name__, exc)
            return None
        logger.debug("Logo loaded (%sx%s px)", logo.width, logo.height)
        return logo

    async def _read(self, ref: str) -> bytes:
        if ref.startswith("data:"):
            return _decode_data_url(ref)

        scheme = urlparse(ref).scheme.lower()
        if scheme in ("http", "https"):
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self.transport,
            ) as client:
                async with client.stream("GET", ref) as response:
                    response.raise_for_status()
                    body = bytearray()
                    async for chunk in response.aiter_bytes():
                        body.extend(chunk)
                        if len(body) > MAX_LOGO_BYTES:
                            raise ValueError(f"logo exceeds {MAX_LOGO_BYTES} bytes, download stopped")
                    return bytes(body)

        if not self.allow_files:
            raise ValueError(f"unsupported logo reference scheme: {scheme or 'path'}")
        path = Path(ref[len("file://"):] if scheme == "file" else ref)
        return path.read_bytes()


async def load_logo(ref: Optional[str], timeout_s: Optional[float] = None) -> Optional[LogoData]:
    return await LogoFetcher(timeout_s if timeout_s is not None else LOGO_TIMEOUT_SECONDS).fetch_logo(ref)
