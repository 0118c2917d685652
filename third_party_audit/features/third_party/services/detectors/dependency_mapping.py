"""
Dependency mapping detector.

Builds the per-call dependency graph and runs every graph analysis over it:
cycles, strongly connected components, the critical rendering path, plus the
URL-based version and vulnerability checks and the loading-order profile.
The graph is local to one `analyze()` call and never cached.
"""
import re
from typing import Any, Dict, List, Optional, Sequence

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import DependencyMappingOptions
from third_party_audit.features.third_party.schemas.resources import IdentifiedService
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.detectors.base import BaseDetector
from third_party_audit.features.third_party.services.document import Document
from third_party_audit.features.third_party.services.graph.analyzer import GraphAnalyzer
from third_party_audit.features.third_party.services.graph.builder import DependencyGraphBuilder
from third_party_audit.features.third_party.services.graph.critical_path import CriticalPathAnalyzer

VERSION_PATTERNS = (
    (re.compile(r"@(\d+\.\d+\.\d+)"), "npm_version"),
    (re.compile(r"(\d+\.\d+\.\d+)"), "semver"),
    (re.compile(r"v(\d+\.\d+)"), "version"),
    (re.compile(r"(\d+\.\d+)"), "major.minor"),
)

SEVERITIES = ("critical", "high", "medium", "low")


def extract_version(url: Optional[str]) -> Optional[Dict[str, str]]:
    if not url:
        return None
    for pattern, kind in VERSION_PATTERNS:
        match = pattern.search(url)
        if match:
            return {"version": match.group(1), "pattern": kind}
    return None


def is_deprecated(version: str, deprecated_versions: Sequence[str]) -> bool:
    """`1.12.4` is deprecated when a deprecated line such as `1.x` shares its major."""
    major = version.split(".")[0]
    return any(line.split(".")[0] == major for line in deprecated_versions)


def loading_rating(blocking_ratio: float) -> str:
    if blocking_ratio < 0.3:
        return "good"
    if blocking_ratio < 0.6:
        return "moderate"
    return "poor"


class DependencyMappingDetector(BaseDetector):
    name = "dependencies"

    def __init__(self, catalog: ServiceCatalog, options: DependencyMappingOptions = None):
        super().__init__(catalog, options or DependencyMappingOptions())
        self.builder = DependencyGraphBuilder()
        self.graph_analyzer = GraphAnalyzer()
        self.critical_path = CriticalPathAnalyzer(catalog, self.options.max_blocking_resources)

    async def analyze(self, document: Document, context: AnalysisContext) -> Dict[str, Any]:
        services = self.discover(document, context)
        graph = self.builder.build(services)

        circular = None
        if self.options.enable_circular_detection:
            circular = self.graph_analyzer.detect_circular_dependencies(graph)
        critical_path = self.critical_path.analyze(services) if self.options.enable_critical_path else None
        versions = self.analyze_versions(services) if self.options.enable_version_detection else None
        vulnerabilities = (
            self.scan_vulnerabilities(services) if self.options.enable_vulnerability_check else None
        )
        loading_order = self.analyze_loading_order(services) if self.options.track_loading_order else None

        blocking_services = [service for service in services if service.resource.render_blocking]
        analytics_services = {service.name for service in services if service.category == "analytics"}
        complexity = self._complexity(graph, circular, loading_order)

        recommendations: List[dict] = []
        if len(blocking_services) > self.options.max_blocking_resources:
            recommendations.append({
                "type": "reduce_blocking_resources",
                "priority": "high",
                "title": "Reduce blocking third-party resources",
                "description": f"{len(blocking_services)} services block page rendering",
                "action": "Load non-critical services asynchronously",
            })
        if len(analytics_services) > self.options.max_analytics_services:
            recommendations.append({
                "type": "consolidate_analytics",
                "priority": "medium",
                "title": "Consolidate analytics services",
                "description": f"{len(analytics_services)} analytics services detected",
                "action": "Keep one analytics platform or route them through a tag manager",
                "services": sorted(analytics_services),
            })
        if circular:
            recommendations.extend(circular["recommendations"])
        if critical_path:
            recommendations.extend(critical_path["optimization"]["recommendations"])
        if versions and versions["outdated"]:
            recommendations.append({
                "type": "update_outdated_versions",
                "priority": "medium",
                "title": "Update outdated service versions",
                "description": f"{len(versions['outdated'])} services use deprecated versions",
                "services": [entry["service"] for entry in versions["outdated"]],
            })
        if vulnerabilities and vulnerabilities["detected"]:
            high = sum(1 for entry in vulnerabilities["detected"] if entry["severity"] in ("critical", "high"))
            recommendations.append({
                "type": "fix_security_vulnerabilities",
                "priority": "critical" if high else "high",
                "title": "Fix known vulnerabilities",
                "description": f"{len(vulnerabilities['detected'])} security vulnerabilities detected",
                "action": "Update or remove vulnerable libraries",
            })
        if loading_order and loading_order["patterns"]["blockingRatio"] > 0.5:
            recommendations.append({
                "type": "improve_loading_pattern",
                "priority": "medium",
                "title": "Improve resource loading pattern",
                "description": "More than half of scripts and stylesheets load synchronously",
                "action": "Use async or defer for scripts and split non-critical CSS",
            })

        return {
            "graph": graph.to_dict(),
            "circularDependencies": circular,
            "stronglyConnectedComponents": self.graph_analyzer.strongly_connected_components(graph),
            "criticalPath": critical_path,
            "clusters": [cluster.to_dict() for cluster in graph.clusters],
            "versions": versions,
            "vulnerabilities": vulnerabilities,
            "loadingOrder": loading_order,
            "complexity": complexity,
            "recommendations": recommendations,
            "summary": {
                "totalServices": graph.statistics.node_count,
                "dependencies": graph.statistics.edge_count,
                "circularDependencies": circular["count"] if circular else 0,
                "criticalPathLength": len(critical_path["renderBlocking"]) if critical_path else 0,
                "vulnerabilities": len(vulnerabilities["detected"]) if vulnerabilities else 0,
                "outdatedVersions": len(versions["outdated"]) if versions else 0,
            },
        }

    def analyze_versions(self, services: Sequence[IdentifiedService]) -> Dict[str, List[dict]]:
        detected, outdated = [], []
        for service in services:
            if service.resource.type != "script":
                continue
            found = extract_version(service.url)
            if found is None:
                continue
            entry = {"service": service.name, "url": service.url, **found}
            detected.append(entry)
            known = service.known
            if known is not None and is_deprecated(found["version"], getattr(known, "deprecated_versions", ())):
                outdated.append({
                    **entry,
                    "currentVersion": known.current_version,
                    "supportedVersions": list(known.supported_versions),
                    "deprecatedVersions": list(known.deprecated_versions),
                })
        return {"detected": detected, "outdated": outdated}

    def scan_vulnerabilities(self, services: Sequence[IdentifiedService]) -> Dict[str, Any]:
        detected = []
        for service in services:
            if service.resource.type != "script":
                continue
            for signature in self.catalog.vulnerabilities_for(service.url):
                detected.append({
                    "service": service.name,
                    "vulnerability": signature.name,
                    "severity": signature.severity,
                    "cve": list(signature.cve),
                    "description": signature.description,
                    "url": service.url,
                })
        by_severity = {severity: [e for e in detected if e["severity"] == severity] for severity in SEVERITIES}
        return {"detected": detected, "bySeverity": by_severity, "count": len(detected)}

    @staticmethod
    def analyze_loading_order(services: Sequence[IdentifiedService]) -> Dict[str, Any]:
        sequence = [
            {
                "order": index,
                "name": service.name,
                "type": service.resource.type,
                "url": service.url,
                "loadingPattern": service.resource.loading_pattern,
                "blocking": service.resource.render_blocking,
                "inHead": service.resource.in_head,
            }
            for index, service in enumerate(
                s for s in services if s.resource.type in ("script", "stylesheet")
            )
        ]
        total = len(sequence)
        blocking = sum(1 for entry in sequence if entry["blocking"])
        ratio = blocking / total if total else 0.0
        return {
            "sequence": sequence,
            "patterns": {
                "blocking": blocking,
                "async": sum(1 for entry in sequence if entry["loadingPattern"] == "async"),
                "defer": sum(1 for entry in sequence if entry["loadingPattern"] == "defer"),
                "total": total,
                "blockingRatio": round(ratio, 3),
                "rating": loading_rating(ratio),
            },
        }

    def _complexity(self, graph, circular, loading_order) -> Dict[str, Any]:
        """0..1 blend of edge density per node, cycles, clusters and blocking ratio."""
        nodes = graph.statistics.node_count
        score = 0.0
        if nodes:
            score += min(0.4, 0.3 * graph.statistics.edge_count / nodes)
            score += min(0.2, 0.05 * graph.statistics.cluster_count)
        if circular:
            score += min(0.2, 0.1 * circular["count"])
        if loading_order:
            score += 0.2 * loading_order["patterns"]["blockingRatio"]
        score = round(min(1.0, score), 3)
        return {
            "score": score,
            "level": "high" if score >= 0.6 else "medium" if score >= 0.3 else "low",
            "exceedsThreshold": score > self.options.complexity_threshold,
        }
