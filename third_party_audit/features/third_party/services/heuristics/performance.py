from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import PerformanceHeuristicOptions
from third_party_audit.features.third_party.services.heuristics.base import BaseHeuristic, DetectorResults

PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}

# Lowest priority still reported at each optimization level
LEVEL_CUTOFF = {"conservative": "high", "balanced": "medium", "aggressive": "low"}


class PerformanceHeuristic(BaseHeuristic):
    name = "performance"

    def __init__(self, options: PerformanceHeuristicOptions = None):
        super().__init__(options or PerformanceHeuristicOptions())

    async def analyze(self, detector_results: DetectorResults, context: AnalysisContext) -> Dict[str, Any]:
        estimates = self.lookup(detector_results, "performance", "services", default=[])
        external = self.lookup(detector_results, "services", "services", "external", default=[])
        domains = self.lookup(detector_results, "services", "domains", "external", default=[])
        analytics = self.lookup(detector_results, "services", "categories", "counts", "analytics", default=0)

        opportunities = self._opportunities(estimates, external, domains, analytics)
        cutoff = PRIORITY_RANK[LEVEL_CUTOFF[self.options.optimization_level]]
        opportunities = [entry for entry in opportunities if PRIORITY_RANK[entry["priority"]] <= cutoff]

        service_impact = [
            {
                "name": entry["name"],
                "impact": entry["impact"],
                "estimatedLoadTime": entry["estimatedLoadTime"],
                "renderBlocking": entry["renderBlocking"],
                "recommendation": "load_async" if entry["renderBlocking"] else "keep",
            }
            for entry in estimates
        ]
        potential_savings = sum(
            entry["estimatedLoadTime"] for entry in estimates if entry["renderBlocking"] and entry["type"] == "script"
        )

        key_findings = []
        if potential_savings:
            key_findings.append(f"Deferring blocking third-party scripts could save about {potential_savings}ms")
        if len(domains) >= self.options.preconnect_domain_threshold:
            key_findings.append(f"Page connects to {len(domains)} third-party domains")

        return {
            "opportunities": opportunities,
            "serviceImpact": service_impact,
            "potentialSavings": potential_savings,
            "optimizationPlan": {
                "immediate": [e["type"] for e in opportunities if e["priority"] in ("critical", "high")],
                "shortTerm": [e["type"] for e in opportunities if e["priority"] == "medium"],
                "longTerm": [e["type"] for e in opportunities if e["priority"] == "low"],
            },
            "keyFindings": key_findings,
            "recommendations": [
                {key: entry[key] for key in ("type", "priority", "title", "description")}
                for entry in opportunities
            ],
        }

    def _opportunities(self, estimates, external, domains, analytics_count) -> List[dict]:
        opportunities = []

        blocking_scripts = [e for e in estimates if e["renderBlocking"] and e["type"] == "script"]
        if blocking_scripts:
            opportunities.append({
                "type": "async_defer_scripts",
                "area": "loading",
                "priority": "high",
                "title": "Load third-party scripts with async or defer",
                "description": f"{len(blocking_scripts)} third-party scripts block the parser",
                "targets": [entry["url"] for entry in blocking_scripts],
            })

        eager_iframes = [s for s in external if s["type"] == "iframe" and s["loadingPattern"] != "lazy"]
        if eager_iframes:
            opportunities.append({
                "type": "lazy_load_iframes",
                "area": "loading",
                "priority": "medium",
                "title": "Lazy-load embedded iframes",
                "description": f"{len(eager_iframes)} third-party iframes load eagerly",
                "targets": [entry["url"] for entry in eager_iframes],
            })

        if len(domains) >= self.options.preconnect_domain_threshold:
            opportunities.append({
                "type": "add_preconnect_hints",
                "area": "network",
                "priority": "low",
                "title": "Add preconnect hints for third-party origins",
                "description": f"{len(domains)} third-party domains need new connections",
                "targets": domains[: self.options.preconnect_domain_threshold],
            })

        if analytics_count > 1:
            opportunities.append({
                "type": "consolidate_tag_managers",
                "area": "governance",
                "priority": "medium",
                "title": "Route analytics through one tag manager",
                "description": f"{analytics_count} analytics resources load independently",
            })
        return opportunities
