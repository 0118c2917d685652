"""
Resource extraction.

Walks a document and yields one `RawResource` per external reference the
page makes (scripts, stylesheets, resource hints, images, iframes) plus one
per inline script that carries a known vendor signature.
"""
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from third_party_audit.features.third_party.schemas.graph import LoadingPattern
from third_party_audit.features.third_party.schemas.resources import RawResource
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.document import Document, DocumentElement
from third_party_audit.platform.logger import get_logger

logger = get_logger(__name__)

RESOURCE_HINT_RELS = {"preconnect", "dns-prefetch", "preload", "prefetch", "modulepreload", "icon"}
NON_SCREEN_MEDIA = {"print", "speech", "aural", "braille", "embossed", "handheld", "projection", "tty", "tv"}


def media_applies_to_screen(media: Optional[str]) -> bool:
    """True when a stylesheet's media list includes the default screen context."""
    if media is None or not media.strip():
        return True
    for query in media.lower().split(","):
        tokens = query.replace("only ", "").split()
        if not tokens:
            continue
        if tokens[0] in ("all", "screen") or tokens[0].startswith("("):
            return True
        if tokens[0] == "not" and len(tokens) > 1 and tokens[1] in NON_SCREEN_MEDIA:
            return True
    return False


def script_loading_pattern(element: DocumentElement) -> LoadingPattern:
    if element.has_attribute("async"):
        return LoadingPattern.async_
    if element.has_attribute("defer"):
        return LoadingPattern.defer
    if (element.get_attribute("type") or "").strip().lower() == "module":
        return LoadingPattern.async_
    return LoadingPattern.blocking


def stylesheet_loading_pattern(element: DocumentElement) -> LoadingPattern:
    if media_applies_to_screen(element.get_attribute("media")):
        return LoadingPattern.blocking
    return LoadingPattern.defer


def embed_loading_pattern(element: DocumentElement) -> LoadingPattern:
    if (element.get_attribute("loading") or "").strip().lower() == "lazy":
        return LoadingPattern.lazy
    return LoadingPattern.async_


def normalize_url(url: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    if not url:
        return None
    url = url.strip()
    if not url or url.startswith(("data:", "javascript:", "about:", "blob:")):
        return None
    if url.startswith("//"):
        return "https:" + url
    if base_url and not urlparse(url).scheme:
        return urljoin(base_url, url)
    return url


def _bare_host(host: Optional[str]) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def is_external_url(url: str, page_host: Optional[str]) -> bool:
    parsed = urlparse(url)
    if not parsed.netloc:
        return False
    host = _bare_host(parsed.hostname)
    page = _bare_host(page_host)
    if not page:
        return True
    return not (host == page or host.endswith("." + page))


class ResourceExtractor:
    def __init__(self, catalog: ServiceCatalog):
        self.catalog = catalog

    def extract(self, document: Document, page_url: Optional[str] = None) -> List[RawResource]:
        """All resources in document order. Malformed references are skipped."""
        base_url = page_url or getattr(document, "base_url", None)
        page_host = urlparse(base_url).hostname if base_url else None

        resources: List[RawResource] = []
        queries = (
            ("script[src]", "script", script_loading_pattern),
            ('link[rel~="stylesheet"][href]', "stylesheet", stylesheet_loading_pattern),
            ("img[src]", "image", embed_loading_pattern),
            ("iframe[src]", "iframe", embed_loading_pattern),
        )
        for selector, resource_type, pattern_for in queries:
            attribute = "href" if resource_type == "stylesheet" else "src"
            for element in document.query_selector_all(selector):
                resource = self._build(
                    element, resource_type, element.get_attribute(attribute),
                    pattern_for(element), base_url, page_host,
                )
                if resource is not None:
                    resources.append(resource)

        for element in document.query_selector_all("link[href]"):
            rels = set((element.get_attribute("rel") or "").lower().split())
            if "stylesheet" in rels or not rels & RESOURCE_HINT_RELS:
                continue
            resource = self._build(
                element, "link", element.get_attribute("href"),
                LoadingPattern.async_, base_url, page_host,
            )
            if resource is not None:
                resources.append(resource)

        resources.extend(self._inline_resources(document))
        resources.sort(key=lambda resource: resource.position)
        return resources

    def _build(self, element, resource_type, raw_url, loading_pattern, base_url, page_host):
        try:
            url = normalize_url(raw_url, base_url)
            if url is None:
                return None
            parsed = urlparse(url)
            # Accessing .hostname validates bracketed hosts and ports
            host = parsed.hostname or ""
            _ = parsed.port
        except ValueError as e:
            logger.warning(f"Skipping malformed {resource_type} URL {raw_url!r}: {e}")
            return None

        return RawResource(
            type=resource_type,
            url=url,
            host=host,
            position=element.position,
            in_head=element.in_head,
            is_external=is_external_url(url, page_host),
            loading_pattern=loading_pattern,
            render_blocking=loading_pattern == LoadingPattern.blocking
            and resource_type in ("script", "stylesheet"),
            attributes=dict(element.attributes),
        )

    def _inline_resources(self, document: Document) -> List[RawResource]:
        resources = []
        seen = set()
        for element in document.query_selector_all("script:not([src])"):
            for name in self.catalog.inline_matches(element.text):
                if name in seen:
                    continue
                seen.add(name)
                resources.append(
                    RawResource(
                        type="inline",
                        url="",
                        position=element.position,
                        in_head=element.in_head,
                        is_external=True,
                        loading_pattern=LoadingPattern.dynamic,
                        attributes={"signature": name},
                    )
                )
        return resources
