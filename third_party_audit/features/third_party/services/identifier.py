import re
from typing import Optional
from urllib.parse import urlparse

from third_party_audit.features.third_party.schemas.resources import IdentifiedService, RawResource
from third_party_audit.features.third_party.services.catalog import ServiceCatalog

FALLBACK_CATEGORIES = (
    (r"cdn|static|assets", "cdn"),
    (r"analytics|tracking", "analytics"),
    (r"social|facebook|twitter|youtube", "social"),
    (r"font", "fonts"),
)


def extract_service_name(url: Optional[str]) -> str:
    """Filename stem of the URL, falling back to its host."""
    if not url:
        return "unknown"
    try:
        parsed = urlparse(url)
    except ValueError:
        return "unknown"
    filename = parsed.path.rstrip("/").split("/")[-1]
    stem = filename.split(".")[0]
    return stem or parsed.hostname or "unknown"


def fallback_category(url: Optional[str]) -> str:
    for pattern, category in FALLBACK_CATEGORIES:
        if url and re.search(pattern, url, re.IGNORECASE):
            return category
    return "other"


class ServiceIdentifier:
    """Maps raw resources to known-service descriptors from the catalog."""

    def __init__(self, catalog: ServiceCatalog):
        self.catalog = catalog

    def identify(self, resource: RawResource) -> IdentifiedService:
        if resource.type == "inline":
            signature = resource.attributes.get("signature", "")
            known = self.catalog.find_by_name(signature)
            return IdentifiedService(
                name=known.name if known else signature or "unknown",
                category=known.category if known else "other",
                resource=resource,
                known=known,
            )

        known = self.catalog.match(resource.url)
        if known is not None:
            return IdentifiedService(
                name=known.name,
                category=known.category,
                resource=resource,
                known=known,
            )
        return IdentifiedService(
            name=extract_service_name(resource.url),
            category=fallback_category(resource.url),
            resource=resource,
        )
