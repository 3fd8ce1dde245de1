from __future__ import annotations

import asyncio
import base64
import io

import httpx
import pytest
from PIL import Image

from auditflow.engine.fetcher import LogoFetcher, decode_image, fit_logo, load_logo


def _png(width: int = 120, height: int = 40, mode: str = "RGBA") -> bytes:
    out = io.BytesIO()
    Image.new(mode, (width, height), (200, 30, 30, 255)[: len(mode)]).save(out, format="PNG")
    return out.getvalue()


def _data_url(raw: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(raw).decode("ascii")


def test_fit_logo_scales_down_keeping_aspect():
    width, height = fit_logo(120, 40, 40, 16)
    assert width <= 40 and height <= 16
    assert width / height == pytest.approx(3)


def test_fit_logo_never_enlarges():
    assert fit_logo(20, 10, 40, 16) == (20, 10)
    assert fit_logo(0, 10, 40, 16) == (0.0, 0.0)


def test_decode_image_converts_palette_images():
    out = io.BytesIO()
    Image.new("P", (10, 5)).save(out, format="GIF")
    logo = decode_image(out.getvalue())
    assert (logo.width, logo.height) == (10, 5)
    assert logo.data.startswith(b"\x89PNG")


def test_data_url_logo_is_decoded():
    logo = asyncio.run(load_logo(_data_url(_png())))
    assert logo is not None
    assert (logo.width, logo.height) == (120, 40)


@pytest.mark.parametrize("ref", [None, "", "data:image/png;base64,bm90IGFuIGltYWdl", "data:nocomma"])
def test_unusable_references_degrade_to_none(ref):
    assert asyncio.run(load_logo(ref)) is None


def test_http_logo_is_fetched():
    raw = _png(60, 60, "RGB")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=raw, headers={"content-type": "image/png"})

    fetcher = LogoFetcher(transport=httpx.MockTransport(handler))
    logo = asyncio.run(fetcher.fetch_logo("https://cdn.acme.example/logo.png"))

    assert logo is not None
    assert (logo.width, logo.height) == (60, 60)
    assert seen[0].headers["user-agent"].startswith("AuditFlow")


def test_http_error_degrades_to_none():
    fetcher = LogoFetcher(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    assert asyncio.run(fetcher.fetch_logo("https://cdn.acme.example/missing.png")) is None


def test_slow_logo_times_out():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, content=_png())

    fetcher = LogoFetcher(timeout_s=0.05, transport=httpx.MockTransport(handler))
    assert asyncio.run(fetcher.fetch_logo("https://cdn.acme.example/slow.png")) is None


def test_local_files_need_opt_in(tmp_path):
    path = tmp_path / "logo.png"
    path.write_bytes(_png(30, 10))

    assert asyncio.run(LogoFetcher().fetch_logo(str(path))) is None
    logo = asyncio.run(LogoFetcher(allow_files=True).fetch_logo(str(path)))
    assert logo is not None and logo.width == 30


def test_oversized_download_is_cut_off(monkeypatch):
    monkeypatch.setattr("auditflow.engine.fetcher.MAX_LOGO_BYTES", 100)
    served = []

    async def chunks():
        for _ in range(10):
            served.append(64)
            yield b"\x00" * 64

    fetcher = LogoFetcher(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=chunks())))
    assert asyncio.run(fetcher.fetch_logo("https://cdn.acme.example/huge.png")) is None
    assert len(served) < 10
