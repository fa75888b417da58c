"""Audio payload resolution for auto-reply actions."""

from __future__ import annotations

import mimetypes
import os
from typing import Optional

from core.errors import MediaResolutionError
from core.models import AudioPayload
from core.ports import MediaFetcherPort


def guess_audio_mimetype(filename: str) -> str:
    mimetype, _ = mimetypes.guess_type(filename)
    if filename.lower().endswith((".ogg", ".oga", ".opus")):
        return "audio/ogg"
    return mimetype or "application/octet-stream"


def resolve_media_path(file_ref: str, media_dir: str) -> str:
    """Map a file reference to a readable path.

    Absolute paths are taken as-is. Relative references are resolved under
    ``media_dir`` and must stay inside it.
    """

    if os.path.isabs(file_ref):
        path = os.path.realpath(file_ref)
    else:
        base = os.path.realpath(media_dir)
        path = os.path.realpath(os.path.join(base, file_ref))
        if os.path.commonpath([base, path]) != base:
            raise MediaResolutionError(f"{file_ref!r} escapes the media directory")

    if not os.path.isfile(path):
        raise MediaResolutionError(f"audio file not found: {file_ref}")
    return path


def load_audio_file(path: str) -> AudioPayload:
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise MediaResolutionError(f"cannot read {path}: {exc}") from exc
    filename = os.path.basename(path)
    return AudioPayload(data=data, filename=filename, mimetype=guess_audio_mimetype(filename))


class MediaResolver:
    """Turn an audio action's file or URL reference into bytes."""

    def __init__(self, media_dir: str, fetcher: Optional[MediaFetcherPort] = None) -> None:
        self._media_dir = media_dir
        self._fetcher = fetcher

    async def resolve(self, file_ref: Optional[str], url: Optional[str]) -> AudioPayload:
        if file_ref:
            return load_audio_file(resolve_media_path(file_ref, self._media_dir))
        if url:
            if self._fetcher is None:
                raise MediaResolutionError("no media fetcher configured for URL audio")
            try:
                return await self._fetcher.fetch(url)
            except MediaResolutionError:
                raise
            except Exception as exc:
                raise MediaResolutionError(f"could not fetch {url}: {exc}") from exc
        raise MediaResolutionError("audio action needs a file or url")
