"""
Performance impact estimation.

Nothing here touches the network: load times and sizes come from the
catalog's impact profiles or, when a resource matches none, from a static
per-tier table.
"""
from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import PerformanceImpactOptions
from third_party_audit.features.third_party.schemas.resources import IdentifiedService
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.detectors.base import BaseDetector
from third_party_audit.features.third_party.services.document import Document

# (load time ms, size bytes) per known-service impact tier
IMPACT_TIERS = {
    "high": (800, 100_000),
    "medium": (400, 35_000),
    "low": (200, 10_000),
    "positive": (100, 5_000),
}


def impact_level(score: float) -> str:
    if score >= 80:
        return "low"
    if score >= 50:
        return "medium"
    return "high"


class PerformanceImpactDetector(BaseDetector):
    name = "performance"

    def __init__(self, catalog: ServiceCatalog, options: PerformanceImpactOptions = None):
        super().__init__(catalog, options or PerformanceImpactOptions())

    def estimate(self, service: IdentifiedService) -> Dict[str, Any]:
        profile = self.catalog.impact_profile(service.url)
        if profile is not None:
            load_time, size, tier, source = profile.load_time, profile.avg_size, profile.impact, profile.name
        elif service.known is not None:
            tier = service.known.impact
            load_time, size = IMPACT_TIERS[tier]
            source = "service_tier"
        else:
            tier = "low"
            load_time, size = self.options.default_load_time_ms, self.options.default_size_bytes
            source = "default"

        return {
            "name": service.name,
            "url": service.url,
            "type": service.resource.type,
            "category": service.category,
            "estimatedLoadTime": load_time,
            "estimatedSize": size,
            "impact": tier,
            "renderBlocking": service.resource.render_blocking,
            "estimateSource": source,
        }

    async def analyze(self, document: Document, context: AnalysisContext) -> Dict[str, Any]:
        services = [s for s in self.third_party(self.discover(document, context)) if s.resource.type != "inline"]
        estimates = [self.estimate(service) for service in services]

        blocking = [entry for entry in estimates if entry["renderBlocking"]]
        non_blocking = [entry for entry in estimates if not entry["renderBlocking"]]
        estimated_load_time = sum(entry["estimatedLoadTime"] for entry in blocking) + max(
            (entry["estimatedLoadTime"] for entry in non_blocking), default=0
        )
        total_size = sum(entry["estimatedSize"] for entry in estimates)
        high_impact = [entry for entry in estimates if entry["impact"] == "high"]

        score = self._score(len(blocking), estimated_load_time, len(high_impact))
        return {
            "services": estimates,
            "blocking": {
                "scripts": sum(1 for entry in blocking if entry["type"] == "script"),
                "stylesheets": sum(1 for entry in blocking if entry["type"] == "stylesheet"),
                "total": len(blocking),
                "resources": [entry["url"] for entry in blocking],
            },
            "estimatedLoadTime": estimated_load_time,
            "totalEstimatedSize": total_size,
            "highImpactServices": [entry["name"] for entry in high_impact],
            "score": score,
            "impactLevel": impact_level(score),
            "exceedsThreshold": (100 - score) / 100 > self.options.impact_threshold,
            "recommendations": self._recommendations(blocking, estimated_load_time, high_impact),
        }

    def _score(self, blocking_count: int, estimated_load_time: int, high_impact_count: int) -> float:
        score = 100.0
        score -= blocking_count * 10
        score -= min(30.0, 30.0 * estimated_load_time / self.options.critical_load_time_ms)
        score -= high_impact_count * 5
        return round(max(0.0, min(100.0, score)), 1)

    def _recommendations(self, blocking: List[dict], estimated_load_time: int, high_impact: List[dict]) -> List[dict]:
        recommendations = []
        if blocking:
            recommendations.append({
                "type": "defer_third_party_scripts",
                "priority": "high" if len(blocking) > 2 else "medium",
                "title": "Load third-party resources without blocking render",
                "description": f"{len(blocking)} third-party resources block rendering",
                "targets": [entry["url"] for entry in blocking],
            })
        if estimated_load_time > self.options.critical_load_time_ms:
            recommendations.append({
                "type": "reduce_third_party_load_time",
                "priority": "high",
                "title": "Reduce third-party load time",
                "description": f"Estimated third-party load time is {estimated_load_time}ms",
            })
        if high_impact:
            recommendations.append({
                "type": "review_high_impact_services",
                "priority": "medium",
                "title": "Review high-impact services",
                "description": "Some services are known to be heavy: " + ", ".join(e["name"] for e in high_impact),
            })
        return recommendations
