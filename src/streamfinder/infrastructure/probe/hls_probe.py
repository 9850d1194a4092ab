"""Resolution probe for HLS manifests.

Reads ``#EXT-X-STREAM-INF`` variant tags of a master playlist and maps the
highest advertised height onto a quality label. A master that lists a
single variant without a RESOLUTION attribute is followed one level down.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

import httpx
import structlog

from streamfinder.domain.entities.errors import ProbeError

log = structlog.get_logger(__name__)

_STREAM_INF = "#EXT-X-STREAM-INF"
_RESOLUTION_RE = re.compile(r"RESOLUTION=(\d+)x(\d+)", re.IGNORECASE)

# (min height, label), checked top-down.
_HEIGHT_LABELS: tuple[tuple[int, str], ...] = (
    (2160, "4K"),
    (1440, "2K"),
    (1080, "1080p"),
    (720, "720p"),
    (480, "480p"),
)


def label_for_height(height: int) -> str:
    """Map a pixel height to a quality label.

    >>> label_for_height(1080)
    '1080p'
    >>> label_for_height(360)
    'SD'
    """
    for min_height, label in _HEIGHT_LABELS:
        if height >= min_height:
            return label
    return "SD"


def parse_variants(content: str) -> tuple[list[int], list[str]]:
    """Return (advertised heights, variant URIs) of a master playlist."""
    heights: list[int] = []
    uris: list[str] = []
    expect_uri = False
    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith(_STREAM_INF):
            m = _RESOLUTION_RE.search(line)
            if m:
                heights.append(int(m.group(2)))
            expect_uri = True
            continue
        if expect_uri and not line.startswith("#"):
            uris.append(line)
            expect_uri = False
    return heights, uris


class HlsResolutionProbe:
    """Estimate playback resolution from an ``.m3u8`` manifest.

    Implements ``ResolutionProbePort`` from domain.ports.resolution_probe.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 8.0,
        max_depth: int = 1,
    ) -> None:
        self._http = http_client
        self._timeout = timeout_seconds
        self._max_depth = max_depth

    async def _fetch(self, url: str) -> str:
        try:
            resp = await self._http.get(
                url, follow_redirects=True, timeout=self._timeout
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProbeError(f"manifest fetch failed: {exc}") from exc
        return resp.text

    async def estimate(self, locator: str) -> str:
        if not locator.startswith(("http://", "https://")):
            raise ProbeError(f"unsupported locator: {locator!r}")

        url = locator
        for depth in range(self._max_depth + 1):
            content = await self._fetch(url)
            if not content.lstrip().startswith("#EXTM3U"):
                raise ProbeError("not an HLS manifest")

            heights, uris = parse_variants(content)
            if heights:
                label = label_for_height(max(heights))
                log.debug("hls_probe_resolved", url=locator, label=label, depth=depth)
                return label
            if len(uris) != 1:
                break
            url = urljoin(url, uris[0])

        raise ProbeError("manifest advertises no resolution")
