"""HTTP media fetch adapter.

Downloads remote audio for auto-reply actions. The blocking urllib call runs
in a worker thread so other conversations keep moving while it downloads.
"""

from __future__ import annotations

import asyncio
import os
import urllib.error
import urllib.parse
import urllib.request

from core.errors import MediaResolutionError
from core.media import guess_audio_mimetype
from core.models import AudioPayload

MAX_AUDIO_BYTES = 16 * 1024 * 1024


class UrlMediaFetcher:
    """MediaFetcherPort implementation backed by urllib."""

    def __init__(self, timeout: float = 20.0, max_bytes: int = MAX_AUDIO_BYTES) -> None:
        self._timeout = timeout
        self._max_bytes = max_bytes

    async def fetch(self, url: str) -> AudioPayload:
        return await asyncio.to_thread(self._fetch_blocking, url)

    def _fetch_blocking(self, url: str) -> AudioPayload:
        scheme = urllib.parse.urlparse(url).scheme
        if scheme not in {"http", "https"}:
            raise MediaResolutionError(f"unsupported audio url scheme: {scheme or '(none)'}")

        request = urllib.request.Request(url, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                data = response.read(self._max_bytes + 1)
                header_type = response.headers.get_content_type()
        except urllib.error.HTTPError as e:
            raise MediaResolutionError(f"audio download failed with HTTP {e.code}") from e
        except urllib.error.URLError as e:
            raise MediaResolutionError(f"audio download failed: {e.reason}") from e

        if len(data) > self._max_bytes:
            raise MediaResolutionError("audio payload is too large")
        if not data:
            raise MediaResolutionError("audio payload is empty")

        filename = os.path.basename(urllib.parse.urlparse(url).path) or "audio.ogg"
        mimetype = header_type if header_type.startswith("audio/") else guess_audio_mimetype(filename)
        return AudioPayload(data=data, filename=filename, mimetype=mimetype)
