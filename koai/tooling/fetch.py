import logging

import requests

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..errors import FileError, KoaiError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


@dataclass
class FetchResult:
    status: int
    status_text: str
    headers: Dict[str, str]
    data: Any
    success: bool


def fetch_data(
    url: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    body: Optional[Union[str, dict]] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> FetchResult:
    """
    Performs an HTTP request. JSON responses are decoded, anything else is text.

    Raises:
        KoaiError: If the request could not be sent or no response arrived.
    """
    request_headers = {"Content-Type": "application/json"}
    request_headers.update(headers or {})

    kwargs = {"headers": request_headers, "timeout": timeout}
    if isinstance(body, dict):
        kwargs["json"] = body
    elif body is not None:
        kwargs["data"] = body

    try:
        response = requests.request(method.upper(), url, **kwargs)
    except requests.exceptions.RequestException as e:
        raise KoaiError(f"Fetch failed: {e}") from e

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = response.json()
        except ValueError:
            data = response.text
    else:
        data = response.text

    return FetchResult(
        status=response.status_code,
        status_text=response.reason or "",
        headers=dict(response.headers),
        data=data,
        success=response.ok,
    )


def download_file(url: str, path: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> bool:
    """Downloads `url` into `path`, streaming the body."""
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(path, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
    except requests.exceptions.RequestException as e:
        raise KoaiError(f"Download failed: {e}") from e
    except OSError as e:
        raise FileError(path, f"Download failed: {e}") from e

    logger.debug("Downloaded %s to %s", url, path)
    return True
