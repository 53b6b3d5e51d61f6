# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Image acquisition

This module turns a URL into an ImageBlob with an async HTTP GET, and
normalizes the accepted image inputs (URL, ImageBlob, raw bytes).

Copyright 2025 DNAi inc.
"""

import logging
from typing import Optional, Union

import httpx

from timage.blob import DEFAULT_CONTENT_TYPE, ImageBlob
from timage.exceptions import FetchFailedError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

ImageSource = Union[str, ImageBlob, bytes, bytearray, memoryview]


async def url_to_blob(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None
) -> ImageBlob:
    """
    Fetch an image URL.

    Args:
        url: Image URL
        timeout: Request timeout in seconds
        client: Optional client to reuse; a new one is created otherwise

    Returns:
        ImageBlob holding the response body and its content type

    Raises:
        FetchFailedError: On invalid URLs, transport errors or non-2xx responses
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned_client:
                response = await owned_client.get(url)
        else:
            response = await client.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"Failed to fetch image from {url}: {e}")
        raise FetchFailedError(f"Failed to fetch image from {url}: {e}", url=url) from e

    content_type = response.headers.get('content-type', '').split(';')[0].strip()
    return ImageBlob(response.content, content_type or DEFAULT_CONTENT_TYPE)


async def load_image(
    source: ImageSource,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None
) -> ImageBlob:
    """
    Resolve any accepted image input to an ImageBlob.

    Strings are fetched as URLs, blobs pass through unchanged and raw
    bytes are wrapped with the default JPEG media type.
    """
    if isinstance(source, str):
        return await url_to_blob(source, timeout=timeout, client=client)
    if isinstance(source, ImageBlob):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return ImageBlob(bytes(source))
    raise TypeError(f"Expected a URL, ImageBlob or bytes, got {type(source).__name__}")
