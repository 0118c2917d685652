from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.resources import IdentifiedService
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.document import Document
from third_party_audit.features.third_party.services.extractor import ResourceExtractor
from third_party_audit.features.third_party.services.identifier import ServiceIdentifier


class BaseDetector:
    """
    Common plumbing for detectors.

    A detector owns its catalog and options, reads the document without
    mutating it, and returns a plain JSON-ready dict. Raising is fine: the
    orchestrator turns any exception into a failed phase result.
    """

    name = "detector"

    def __init__(self, catalog: ServiceCatalog, options=None):
        self.catalog = catalog
        self.options = options
        self.extractor = ResourceExtractor(catalog)
        self.identifier = ServiceIdentifier(catalog)

    def discover(self, document: Document, context: AnalysisContext) -> List[IdentifiedService]:
        page_url = context.url or getattr(document, "base_url", None)
        resources = self.extractor.extract(document, page_url)
        return [self.identifier.identify(resource) for resource in resources]

    @staticmethod
    def third_party(services: List[IdentifiedService]) -> List[IdentifiedService]:
        return [service for service in services if service.resource.is_external]

    async def analyze(self, document: Document, context: AnalysisContext) -> Dict[str, Any]:
        raise NotImplementedError
