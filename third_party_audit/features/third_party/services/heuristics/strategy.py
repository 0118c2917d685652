from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import StrategyHeuristicOptions
from third_party_audit.features.third_party.services.heuristics.base import (
    BaseHeuristic,
    DetectorResults,
    clamp_score,
)

# Services a site can carry before portfolio size itself costs governance points
PORTFOLIO_SOFT_LIMIT = 10


class StrategyHeuristic(BaseHeuristic):
    """Vendor portfolio and dependency governance."""

    name = "strategy"

    def __init__(self, options: StrategyHeuristicOptions = None):
        super().__init__(options or StrategyHeuristicOptions())

    async def analyze(self, detector_results: DetectorResults, context: AnalysisContext) -> Dict[str, Any]:
        by_category = self.lookup(detector_results, "services", "categories", "byCategory", default={})
        summary = self.lookup(detector_results, "services", "summary", default={})
        edges = self.lookup(detector_results, "dependencies", "graph", "edges", default=[])
        nodes = self.lookup(detector_results, "dependencies", "graph", "nodes", default=[])
        cycle_count = self.lookup(detector_results, "dependencies", "circularDependencies", "count", default=0)

        vendors = {
            category: sorted({entry["name"] for entry in entries}) for category, entries in by_category.items()
        }
        redundant = {
            category: names for category, names in vendors.items()
            if category not in ("other", "cdn") and len(names) >= self.options.redundancy_threshold
        }

        node_names = {node["id"]: node["name"] for node in nodes}
        conflicts = [
            {"from": node_names.get(edge["from"], edge["from"]), "to": node_names.get(edge["to"], edge["to"])}
            for edge in edges if edge["type"] == "conflicting"
        ]
        fallbacks = [edge for edge in edges if edge["type"] == "fallback"]

        total = summary.get("totalServices", 0)
        unknown = summary.get("unknownServices", 0)
        unknown_penalty = 3 if self.options.analysis_mode == "production" else 1

        score = 100.0
        score -= len(redundant) * 10
        score -= len(conflicts) * 10
        score -= cycle_count * 10
        score -= max(0, total - PORTFOLIO_SOFT_LIMIT) * 2
        score -= unknown * unknown_penalty
        score = clamp_score(score)

        opportunities = self._opportunities(redundant, conflicts, cycle_count, total)
        key_findings = [f"{len(members)} vendors provide {category} services" for category, members in redundant.items()]
        if conflicts:
            key_findings.append(f"{len(conflicts)} conflicting framework combinations loaded together")

        return {
            "portfolio": {
                "vendorsByCategory": vendors,
                "vendorCount": sum(len(members) for members in vendors.values()),
                "redundancy": redundant,
            },
            "dependencyOptimization": {
                "conflicts": conflicts,
                "circularDependencies": cycle_count,
                "fallbacks": len(fallbacks),
            },
            "governanceScore": score,
            "opportunities": opportunities,
            "keyFindings": key_findings,
            "recommendations": [
                {key: entry[key] for key in ("type", "priority", "title", "description")}
                for entry in opportunities
            ],
        }

    @staticmethod
    def _opportunities(redundant, conflicts, cycle_count, total) -> List[dict]:
        opportunities = []
        for category, names in redundant.items():
            opportunities.append({
                "type": "reduce_vendor_redundancy",
                "area": "governance",
                "priority": "medium",
                "title": f"Reduce overlapping {category} vendors",
                "description": f"{', '.join(names)} cover the same need",
            })
        if conflicts:
            opportunities.append({
                "type": "resolve_framework_conflicts",
                "area": "strategy",
                "priority": "high",
                "title": "Resolve conflicting frameworks",
                "description": f"{len(conflicts)} conflicting service pairs are loaded on the same page",
            })
        if cycle_count:
            opportunities.append({
                "type": "simplify_dependency_chains",
                "area": "strategy",
                "priority": "high",
                "title": "Simplify dependency chains",
                "description": f"{cycle_count} circular dependency chains between services",
            })
        if total > PORTFOLIO_SOFT_LIMIT:
            opportunities.append({
                "type": "audit_vendor_portfolio",
                "area": "governance",
                "priority": "low",
                "title": "Audit the third-party vendor portfolio",
                "description": f"{total} third-party services are loaded",
            })
        return opportunities
