import logging
import time
from typing import Callable, Optional

from cachetools import TTLCache

from models.preview import PreviewResponse

logger = logging.getLogger(__name__)


class PreviewCache:
    """
    Assembled previews keyed by the request URL exactly as received.

    Entries expire `ttl` seconds after they were written; an expired entry
    reads as a miss even before it is physically evicted.
    """

    def __init__(self, ttl: float, maxsize: int = 10000,
                 timer: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._entries: TTLCache[str, PreviewResponse] = TTLCache(
            maxsize=maxsize, ttl=ttl, timer=timer
        )

    def get(self, key: str) -> Optional[PreviewResponse]:
        value = self._entries.get(key)
        logger.debug(f"Preview cache {'hit' if value is not None else 'miss'} for {key}")
        return value

    def set(self, key: str, value: PreviewResponse) -> None:
        self._entries[key] = value

    def __len__(self) -> int:
        return len(self._entries)
