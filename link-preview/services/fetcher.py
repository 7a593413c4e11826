from typing import NamedTuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import FETCH_RETRIES, REQUEST_TIMEOUT, USER_AGENT


class FetchedPage(NamedTuple):
    body: str
    final_url: str


def _retry_policy() -> Retry:
    return Retry(
        total=FETCH_RETRIES,
        backoff_factor=0.3,
        status_forcelist=(408, 429, 500, 502, 503, 504),
        allowed_methods=frozenset(["GET"]),
        raise_on_status=False,
    )


def fetch_page(url: str) -> FetchedPage:
    """
    Download the markup of `url`, following redirects.

    Raises requests.Timeout, requests.HTTPError or requests.ConnectionError
    (all requests.RequestException) once the retry budget is spent.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=_retry_policy())
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    try:
        response = session.get(
            url,
            timeout=REQUEST_TIMEOUT,
            headers={"User-Agent": USER_AGENT},
            allow_redirects=True,
        )
        response.raise_for_status()
        return FetchedPage(body=response.text, final_url=response.url)
    finally:
        session.close()
