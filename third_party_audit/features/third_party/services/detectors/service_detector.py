from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import ServiceDetectorOptions
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.detectors.base import BaseDetector
from third_party_audit.features.third_party.services.document import Document


class ServiceDetector(BaseDetector):
    """Inventory of the services a page loads, grouped by category and origin."""

    name = "services"

    def __init__(self, catalog: ServiceCatalog, options: ServiceDetectorOptions = None):
        super().__init__(catalog, options or ServiceDetectorOptions())

    async def analyze(self, document: Document, context: AnalysisContext) -> Dict[str, Any]:
        services = self.discover(document, context)
        if not self.options.detect_inline_services:
            services = [service for service in services if service.resource.type != "inline"]

        external = [service for service in services if service.resource.is_external]
        internal = [service for service in services if not service.resource.is_external]
        reported = services if self.options.include_internal else external

        categories: Dict[str, List[Dict[str, Any]]] = {}
        for service in external:
            categories.setdefault(service.category, []).append(service.summary())

        external_domains = sorted({s.resource.host for s in external if s.resource.host})
        internal_domains = sorted({s.resource.host for s in internal if s.resource.host})
        known = [service for service in external if service.is_known]

        return {
            "services": {
                "detected": [service.summary() for service in reported],
                "external": [service.summary() for service in external],
                "internal": [service.summary() for service in internal],
                "total": len(external),
            },
            "categories": {
                "byCategory": categories,
                "counts": {category: len(entries) for category, entries in categories.items()},
            },
            "domains": {
                "external": external_domains,
                "internal": internal_domains,
            },
            "summary": {
                "totalServices": len(external),
                "knownServices": len(known),
                "unknownServices": len(external) - len(known),
                "externalDomains": len(external_domains),
                "categoryCount": len(categories),
            },
        }
