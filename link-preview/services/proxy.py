from typing import Iterator, NamedTuple

import requests

from config import ASSET_TIMEOUT, USER_AGENT

CHUNK_SIZE = 64 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UpstreamFile(NamedTuple):
    content_type: str
    chunks: Iterator[bytes]
    response: requests.Response


def open_upstream(url: str) -> UpstreamFile:
    """
    Start downloading `url` without buffering it. The caller relays `chunks`
    as they arrive and must close `response` once done.
    """
    response = requests.get(
        url,
        stream=True,
        timeout=ASSET_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
        allow_redirects=True,
    )
    try:
        response.raise_for_status()
    except requests.RequestException:
        response.close()
        raise
    return UpstreamFile(
        content_type=response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE,
        chunks=response.iter_content(chunk_size=CHUNK_SIZE),
        response=response,
    )
