from typing import Dict, List, Sequence

from third_party_audit.features.third_party.schemas.resources import IdentifiedService
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.graph.builder import is_graphable_url, service_node_id


class CriticalPathAnalyzer:
    """
    Orders render-blocking resources by document position and labels the
    ones matching the catalog's slow patterns as bottlenecks. Only resources
    the graph builder accepts are listed, once each, so every id is a node id.
    """

    def __init__(self, catalog: ServiceCatalog, max_blocking_resources: int = 3):
        self.catalog = catalog
        self.max_blocking_resources = max_blocking_resources

    def analyze(self, services: Sequence[IdentifiedService]) -> Dict[str, object]:
        blocking = sorted(
            (
                service for service in services
                if service.resource.render_blocking and service.resource.type in ("script", "stylesheet")
            ),
            key=lambda service: service.resource.position,
        )

        render_blocking = []
        bottlenecks = []
        seen = set()
        for service in blocking:
            if not is_graphable_url(service.url):
                continue
            node_id = service_node_id(service.resource.type, service.url, service.name)
            if node_id in seen:
                continue
            seen.add(node_id)
            render_blocking.append({
                "id": node_id,
                "name": service.name,
                "type": service.resource.type,
                "url": service.url,
                "position": service.resource.position,
                "impact": "high",
            })
            if self.catalog.is_slow(service.url):
                bottlenecks.append({
                    "service": node_id,
                    "name": service.name,
                    "url": service.url,
                    "type": "performance",
                    "reason": "slow_loading_service",
                    "impact": "high",
                })

        return {
            "renderBlocking": render_blocking,
            "path": [entry["id"] for entry in render_blocking],
            "bottlenecks": bottlenecks,
            "optimization": {"recommendations": self._recommendations(render_blocking, bottlenecks)},
        }

    def _recommendations(self, render_blocking: List[dict], bottlenecks: List[dict]) -> List[dict]:
        recommendations = []
        if len(render_blocking) > self.max_blocking_resources:
            recommendations.append({
                "type": "reduce_blocking_count",
                "priority": "high",
                "title": "Reduce render-blocking resources",
                "description": f"{len(render_blocking)} resources block the first render",
                "action": "Add async or defer to scripts and inline critical CSS",
            })
        if bottlenecks:
            recommendations.append({
                "type": "address_bottlenecks",
                "priority": "high",
                "title": "Address critical path bottlenecks",
                "description": "Slow third-party services sit on the critical rendering path",
                "action": "Move these services off the critical path",
                "targets": [entry["service"] for entry in bottlenecks],
                "services": [entry["name"] for entry in bottlenecks],
            })
        return recommendations
