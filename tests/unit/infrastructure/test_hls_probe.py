"""Tests for HlsResolutionProbe."""

from __future__ import annotations

import httpx
import pytest
import respx

from streamfinder.domain.entities.errors import ProbeError
from streamfinder.infrastructure.probe.hls_probe import (
    HlsResolutionProbe,
    label_for_height,
    parse_variants,
)

_MASTER = "https://cdn.test/show/master.m3u8"

_MASTER_BODY = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360
low/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080
high/index.m3u8
"""

_SINGLE_VARIANT = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=1000000
720/index.m3u8
"""

_MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-TARGETDURATION:10
#EXTINF:10.0,
seg0.ts
#EXT-X-ENDLIST
"""


class TestLabelForHeight:
    @pytest.mark.parametrize(
        ("height", "label"),
        [
            (2160, "4K"),
            (1440, "2K"),
            (1080, "1080p"),
            (800, "720p"),
            (720, "720p"),
            (480, "480p"),
            (360, "SD"),
        ],
    )
    def test_labels(self, height: int, label: str) -> None:
        assert label_for_height(height) == label


class TestParseVariants:
    def test_master(self) -> None:
        heights, uris = parse_variants(_MASTER_BODY)
        assert heights == [360, 1080]
        assert uris == ["low/index.m3u8", "high/index.m3u8"]

    def test_media_playlist_has_no_variants(self) -> None:
        assert parse_variants(_MEDIA_PLAYLIST) == ([], [])


class TestHlsResolutionProbe:
    @respx.mock
    async def test_highest_variant_wins(self) -> None:
        respx.get(_MASTER).respond(200, text=_MASTER_BODY)
        async with httpx.AsyncClient() as http:
            label = await HlsResolutionProbe(http_client=http).estimate(_MASTER)
        assert label == "1080p"

    @respx.mock
    async def test_follows_single_variant(self) -> None:
        respx.get(_MASTER).respond(200, text=_SINGLE_VARIANT)
        respx.get("https://cdn.test/show/720/index.m3u8").respond(
            200,
            text="#EXTM3U\n#EXT-X-STREAM-INF:RESOLUTION=1280x720\nv/index.m3u8\n",
        )
        async with httpx.AsyncClient() as http:
            label = await HlsResolutionProbe(http_client=http).estimate(_MASTER)
        assert label == "720p"

    @respx.mock
    async def test_media_playlist_without_resolution(self) -> None:
        respx.get(_MASTER).respond(200, text=_MEDIA_PLAYLIST)
        async with httpx.AsyncClient() as http:
            with pytest.raises(ProbeError):
                await HlsResolutionProbe(http_client=http).estimate(_MASTER)

    @respx.mock
    async def test_http_error(self) -> None:
        respx.get(_MASTER).respond(404)
        async with httpx.AsyncClient() as http:
            with pytest.raises(ProbeError):
                await HlsResolutionProbe(http_client=http).estimate(_MASTER)

    @respx.mock
    async def test_not_a_manifest(self) -> None:
        respx.get(_MASTER).respond(200, text="<html></html>")
        async with httpx.AsyncClient() as http:
            with pytest.raises(ProbeError, match="not an HLS manifest"):
                await HlsResolutionProbe(http_client=http).estimate(_MASTER)

    async def test_unsupported_locator(self) -> None:
        async with httpx.AsyncClient() as http:
            with pytest.raises(ProbeError):
                await HlsResolutionProbe(http_client=http).estimate("magnet:?xt=abc")
