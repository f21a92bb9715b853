from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import httpx
from loguru import logger

from .errors import UploadError
from .settings import DEFAULT_UPLOAD_ENDPOINT, DEFAULT_UPLOAD_TIMEOUT

if TYPE_CHECKING:
    from loguru import Logger


class UploadFunc(Protocol):
    def __call__(self, file_path: Path, api_key: str, endpoint: str, timeout: float) -> str: ...


def upload_file(
    file_path: Path,
    api_key: str,
    endpoint: str = DEFAULT_UPLOAD_ENDPOINT,
    timeout: float = DEFAULT_UPLOAD_TIMEOUT,
    log: Logger = logger,
) -> str:
    """
    Send one variant to the media host and return its hosted URL.

    The key goes into the Authorization header verbatim (no "Bearer").
    Any transport error, non-2xx status, non-JSON body or missing "url"
    raises UploadError. The local file is left alone; the caller removes it.
    """
    file_path = Path(file_path)
    headers = {"Authorization": api_key, "Accept": "application/json"}

    try:
        with file_path.open("rb") as fh:
            files = {"file": (file_path.name, fh, "image/webp")}
            response = httpx.post(endpoint, files=files, headers=headers, timeout=timeout)
    except OSError as exc:
        raise UploadError(f"cannot read {file_path.name}: {exc}") from exc
    except httpx.HTTPError as exc:
        log.error("upload_transport_error", file=file_path.name, url=endpoint, error=str(exc))
        raise UploadError(f"upload of {file_path.name} failed: {exc}") from exc

    if not 200 <= response.status_code < 300:
        log.error(
            "upload_rejected",
            file=file_path.name,
            status=response.status_code,
            body=response.text[:500],
        )
        raise UploadError(f"upload of {file_path.name} returned HTTP {response.status_code}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise UploadError(f"upload of {file_path.name} returned invalid JSON: {exc}") from exc

    url = payload.get("url") if isinstance(payload, dict) else None
    if not url:
        raise UploadError(f"upload of {file_path.name} returned no url")

    log.debug("upload_succeeded", file=file_path.name, url=url)
    return str(url)
