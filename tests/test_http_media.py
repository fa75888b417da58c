from __future__ import annotations

import asyncio

import pytest

from adapters.http_media import UrlMediaFetcher
from core.errors import MediaResolutionError


@pytest.mark.parametrize("url", ["file:///etc/passwd", "ftp://example.com/a.ogg", "intro.ogg"])
def test_only_http_urls_are_fetched(url: str) -> None:
    with pytest.raises(MediaResolutionError):
        asyncio.run(UrlMediaFetcher().fetch(url))
