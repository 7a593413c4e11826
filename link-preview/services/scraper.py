import logging
import re
from typing import Callable, Optional
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from models.preview import ExtractedMetadata
from services.validation import is_valid_url

logger = logging.getLogger(__name__)

Rule = Callable[[BeautifulSoup, str], Optional[str]]
RuleSet = dict[str, list[Rule]]


def compose(*bundles: RuleSet) -> RuleSet:
    """
    Merge rule bundles field by field. Rules from later bundles are appended,
    so they only apply when every earlier rule for the field came up empty.
    """
    rules: RuleSet = {}
    for bundle in bundles:
        for field, field_rules in bundle.items():
            rules.setdefault(field, []).extend(field_rules)
    return rules


def extract_metadata(html: str, url: str, rules: Optional[RuleSet] = None) -> ExtractedMetadata:
    """
    Run the rule set over `html` fetched from `url`. Fields no rule could
    fill are left as empty strings.
    """
    soup = BeautifulSoup(html, "html.parser")
    rules = DEFAULT_RULES if rules is None else rules

    values = {}
    for field, field_rules in rules.items():
        if field in ExtractedMetadata.model_fields:
            values[field] = _first_value(field, field_rules, soup, url)
    return ExtractedMetadata(**values)


def _first_value(field: str, field_rules: list[Rule], soup: BeautifulSoup, url: str) -> str:
    for rule in field_rules:
        try:
            value = rule(soup, url)
        except Exception:
            logger.debug("Rule for %s failed on %s", field, url, exc_info=True)
            continue
        if value:
            return value
    return ""


# --- helpers ---

def _meta(soup: BeautifulSoup, **attrs) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag:
        return tag.get("content") or None
    return None


def meta_property(value: str) -> Rule:
    return lambda soup, url: _meta(soup, property=value)


def meta_name(value: str) -> Rule:
    return lambda soup, url: _meta(soup, name=value)


def meta_itemprop(value: str) -> Rule:
    return lambda soup, url: _meta(soup, itemprop=value)


def link_href(rel: str) -> Rule:
    def rule(soup: BeautifulSoup, url: str) -> str | None:
        tag = soup.select_one(f'link[rel="{rel}"]')
        return tag.get("href") if tag else None
    return rule


def absolute(rule: Rule) -> Rule:
    """Resolve whatever `rule` found against the page URL."""
    def resolved(soup: BeautifulSoup, url: str) -> str | None:
        value = rule(soup, url)
        if not value:
            return None
        return urljoin(url, value.strip())
    return resolved


def _html_title(soup: BeautifulSoup, url: str) -> str | None:
    if soup.title and soup.title.string:
        return soup.title.string.strip() or None
    return None


def _first_heading(soup: BeautifulSoup, url: str) -> str | None:
    tag = soup.find("h1")
    if tag:
        return tag.get_text(strip=True) or None
    return None


def _itemprop_logo(soup: BeautifulSoup, url: str) -> str | None:
    tag = soup.find(attrs={"itemprop": "logo"})
    if not tag:
        return None
    return tag.get("content") or tag.get("src") or tag.get("href")


def _author_link(soup: BeautifulSoup, url: str) -> str | None:
    tag = soup.find("a", rel="author")
    if tag:
        return tag.get_text(strip=True) or None
    return None


def _time_datetime(soup: BeautifulSoup, url: str) -> str | None:
    tag = soup.find("time", datetime=True)
    return tag["datetime"] if tag else None


def _canonical_url(rule: Rule) -> Rule:
    def canonical(soup: BeautifulSoup, url: str) -> str | None:
        value = absolute(rule)(soup, url)
        return value if value and is_valid_url(value) else None
    return canonical


# --- base rule bundles ---

AUTHOR_RULES: RuleSet = {
    "author": [
        meta_name("author"),
        meta_property("article:author"),
        meta_itemprop("author"),
        _author_link,
    ],
}

DATE_RULES: RuleSet = {
    "date": [
        meta_property("article:published_time"),
        meta_property("og:published_time"),
        meta_name("date"),
        meta_name("dc.date"),
        meta_itemprop("datePublished"),
        meta_property("article:modified_time"),
        meta_property("og:updated_time"),
        _time_datetime,
    ],
}

DESCRIPTION_RULES: RuleSet = {
    "description": [
        meta_property("og:description"),
        meta_name("twitter:description"),
        meta_name("description"),
        meta_itemprop("description"),
    ],
}

IMAGE_RULES: RuleSet = {
    "image": [
        absolute(meta_property("og:image:secure_url")),
        absolute(meta_property("og:image:url")),
        absolute(meta_property("og:image")),
        absolute(meta_name("twitter:image")),
        absolute(meta_name("twitter:image:src")),
        absolute(meta_property("twitter:image")),
        absolute(meta_itemprop("image")),
        absolute(link_href("image_src")),
    ],
}

LOGO_RULES: RuleSet = {
    "logo": [
        absolute(meta_property("og:logo")),
        absolute(_itemprop_logo),
        absolute(link_href("apple-touch-icon")),
        absolute(link_href("apple-touch-icon-precomposed")),
    ],
}

PUBLISHER_RULES: RuleSet = {
    "publisher": [
        meta_property("og:site_name"),
        meta_name("application-name"),
        meta_name("apple-mobile-web-app-title"),
        meta_name("twitter:app:name:iphone"),
        meta_name("publisher"),
    ],
}

TITLE_RULES: RuleSet = {
    "title": [
        meta_property("og:title"),
        meta_name("twitter:title"),
        _html_title,
        _first_heading,
    ],
}

URL_RULES: RuleSet = {
    "url": [
        _canonical_url(meta_property("og:url")),
        _canonical_url(link_href("canonical")),
    ],
}


# --- youtube ---

YOUTUBE_HOSTS = ("youtube.com", "www.youtube.com", "m.youtube.com", "youtu.be")
_YOUTUBE_PATH_ID = re.compile(r"^/(?:embed|shorts|v|live)/([\w-]{11})")


def youtube_video_id(url: str) -> str | None:
    parsed = urlparse(url)
    if parsed.netloc.lower() not in YOUTUBE_HOSTS:
        return None
    if parsed.netloc.lower() == "youtu.be":
        video_id = parsed.path.lstrip("/").split("/")[0]
        return video_id or None
    if parsed.path == "/watch":
        ids = parse_qs(parsed.query).get("v")
        return ids[0] if ids else None
    match = _YOUTUBE_PATH_ID.match(parsed.path)
    return match.group(1) if match else None


def _youtube_thumbnail(soup: BeautifulSoup, url: str) -> str | None:
    video_id = youtube_video_id(url)
    return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg" if video_id else None


def _youtube_publisher(soup: BeautifulSoup, url: str) -> str | None:
    return "YouTube" if urlparse(url).netloc.lower() in YOUTUBE_HOSTS else None


def _youtube_channel(soup: BeautifulSoup, url: str) -> str | None:
    if urlparse(url).netloc.lower() not in YOUTUBE_HOSTS:
        return None
    tag = soup.select_one('span[itemprop="author"] link[itemprop="name"]')
    return tag.get("content") if tag else None


YOUTUBE_RULES: RuleSet = {
    "image": [_youtube_thumbnail],
    "publisher": [_youtube_publisher],
    "author": [_youtube_channel],
}


# --- rules specific to this service ---

def _html_lang(soup: BeautifulSoup, url: str) -> str | None:
    return soup.html.get("lang") if soup.html else None


def _favicon_logo(soup: BeautifulSoup, url: str) -> str | None:
    tag = soup.select_one('link[rel="icon"]')
    href = tag.get("href") if tag else None
    if not href:
        tag = soup.select_one('link[rel="shortcut icon"]')
        href = tag.get("href") if tag else None
    if not href:
        return None
    if href.startswith("http"):
        return href
    parsed = urlparse(url)
    base = f"{parsed.scheme}://{parsed.netloc}"
    return base + (href if href.startswith("/") else f"/{href}")


CUSTOM_RULES: RuleSet = {
    "lang": [_html_lang],
    "logo": [_favicon_logo],
}


DEFAULT_RULES: RuleSet = compose(
    AUTHOR_RULES,
    DATE_RULES,
    DESCRIPTION_RULES,
    IMAGE_RULES,
    LOGO_RULES,
    PUBLISHER_RULES,
    TITLE_RULES,
    URL_RULES,
    YOUTUBE_RULES,
    CUSTOM_RULES,
)
