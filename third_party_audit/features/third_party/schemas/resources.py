from typing import Dict, Optional

from pydantic import Field

from third_party_audit.features.third_party.schemas.base import CamelModel
from third_party_audit.features.third_party.schemas.graph import LoadingPattern
from third_party_audit.features.third_party.schemas.services import KnownService


class RawResource(CamelModel):
    """A resource reference pulled out of the document, before identification."""

    type: str  # script | stylesheet | link | image | iframe | inline
    url: str
    host: str = ""
    position: int = 0
    in_head: bool = False
    is_external: bool = True
    loading_pattern: LoadingPattern = LoadingPattern.async_
    render_blocking: bool = False
    attributes: Dict[str, str] = Field(default_factory=dict)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes


class IdentifiedService(CamelModel):
    """A discovered resource paired with its known-service descriptor, if any."""

    name: str
    category: str
    resource: RawResource
    known: Optional[KnownService] = None

    @property
    def url(self) -> str:
        return self.resource.url

    @property
    def is_known(self) -> bool:
        return self.known is not None

    def summary(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "category": self.category,
            "url": self.resource.url,
            "host": self.resource.host,
            "type": self.resource.type,
            "loadingPattern": self.resource.loading_pattern,
            "renderBlocking": self.resource.render_blocking,
            "isExternal": self.resource.is_external,
            "knownService": self.is_known,
            "confidence": self.known.confidence if self.known else 0.0,
        }
