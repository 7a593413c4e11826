from pydantic import BaseModel, ConfigDict
from typing import Optional


class ExtractedMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    image: str = ""
    logo: str = ""
    lang: str = ""
    publisher: str = ""
    author: str = ""
    date: str = ""
    url: str = ""


class EnrichedAsset(BaseModel):
    """An image reference; only `url` is set when enrichment was skipped or failed."""

    url: str
    type: Optional[str] = None
    size: Optional[int] = None
    size_pretty: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class PreviewResponse(BaseModel):
    title: str = ""
    description: str = ""
    image: EnrichedAsset
    logo: EnrichedAsset
    lang: str = ""
    publisher: str = ""
    url: str = ""


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
