import asyncio
import logging

from models.preview import EnrichedAsset, ExtractedMetadata, PreviewResponse
from services.cache import PreviewCache
from services.enricher import enrich_asset
from services.fetcher import FetchedPage, fetch_page
from services.scraper import extract_metadata

logger = logging.getLogger(__name__)


class PreviewFetchError(Exception):
    """The page could not be fetched or its metadata could not be extracted."""


def assemble_preview(metadata: ExtractedMetadata, final_url: str,
                     image: EnrichedAsset, logo: EnrichedAsset) -> PreviewResponse:
    return PreviewResponse(
        title=metadata.title or "",
        description=metadata.description or "",
        image=image,
        logo=logo,
        lang=metadata.lang or "",
        publisher=metadata.publisher or "",
        url=metadata.url or final_url,
    )


def retrieve_metadata(url: str) -> tuple[FetchedPage, ExtractedMetadata]:
    try:
        page = fetch_page(url)
        return page, extract_metadata(page.body, page.final_url)
    except Exception as exc:
        raise PreviewFetchError(str(exc)) from exc


class PreviewService:
    """Builds link previews, serving repeated requests from the cache."""

    def __init__(self, cache: PreviewCache):
        self.cache = cache

    async def get_preview(self, url: str) -> PreviewResponse:
        """
        Return the preview for an already validated `url`.

        Raises PreviewFetchError when the page cannot be fetched or parsed.
        Image and logo failures only degrade their own field.
        """
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        # requests and the HTML parse are blocking: run in thread pool
        loop = asyncio.get_running_loop()
        page, metadata = await loop.run_in_executor(None, retrieve_metadata, url)

        image = await loop.run_in_executor(None, enrich_asset, metadata.image)
        logo = await loop.run_in_executor(None, enrich_asset, metadata.logo)

        preview = assemble_preview(metadata, page.final_url, image, logo)
        self.cache.set(url, preview)
        logger.info(f"Preview built for {url}")
        return preview
