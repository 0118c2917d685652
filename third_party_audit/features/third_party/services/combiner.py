"""
Result combination.

`ResultCombiner.combine` is a pure function of the successful phase results:
components are visited in a fixed order, failed ones are skipped, and any
field a failed component would have supplied falls back to 0, an empty list
or None. No timestamps are written here so identical inputs give identical
output.
"""
from typing import Any, Dict, List, Mapping

from third_party_audit.features.third_party.schemas.analysis import AnalysisPhaseResult
from third_party_audit.features.third_party.services.scoring import WeightedScorer

DETECTOR_ORDER = ("services", "performance", "privacy", "dependencies")
HEURISTIC_ORDER = ("performance", "security", "strategy")

CDN_RECOMMENDATION_TYPES = {"add_preconnect_hints", "add_subresource_integrity", "use_https_resources"}


def ordered(results: Mapping[str, AnalysisPhaseResult], order) -> List[AnalysisPhaseResult]:
    known = [results[key] for key in order if key in results]
    extra = [results[key] for key in sorted(results) if key not in order]
    return known + extra


def _entries(result: AnalysisPhaseResult, key: str) -> List[Dict[str, Any]]:
    """Dict entries of a component's list field; anything else is ignored."""
    value = result.get(key, default=[])
    if not isinstance(value, (list, tuple)):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def legacy_risk_level(risk_score: float) -> str:
    if risk_score >= 80:
        return "high"
    if risk_score >= 50:
        return "medium"
    return "low"


class ResultCombiner:
    def __init__(self, scorer: WeightedScorer = None):
        self.scorer = scorer or WeightedScorer()

    def combine(
        self,
        detectors: Mapping[str, AnalysisPhaseResult],
        heuristics: Mapping[str, AnalysisPhaseResult],
    ) -> Dict[str, Any]:
        services = detectors.get("services")
        performance = detectors.get("performance")
        privacy = detectors.get("privacy")
        dependencies = detectors.get("dependencies")
        performance_heuristic = heuristics.get("performance")
        security_heuristic = heuristics.get("security")

        def pick(result, *path, default=None):
            return result.get(*path, default=default) if result is not None else default

        recommendations = self._recommendations(detectors, heuristics)
        all_results = ordered(detectors, DETECTOR_ORDER) + ordered(heuristics, HEURISTIC_ORDER)

        return {
            "summary": {
                "totalServices": pick(services, "summary", "totalServices", default=0),
                "knownServices": pick(services, "summary", "knownServices", default=0),
                "externalDomains": pick(services, "summary", "externalDomains", default=0),
                "categories": pick(services, "summary", "categoryCount", default=0),
                "blockingResources": pick(performance, "blocking", "total", default=0),
                "estimatedLoadTime": pick(performance, "estimatedLoadTime", default=0),
                "trackingServices": pick(privacy, "tracking", "count", default=0),
                "circularDependencies": pick(dependencies, "summary", "circularDependencies", default=0),
                "criticalPathLength": pick(dependencies, "summary", "criticalPathLength", default=0),
                "vulnerabilities": pick(dependencies, "summary", "vulnerabilities", default=0),
                "recommendations": len(recommendations),
                "successfulComponents": sum(1 for result in all_results if result.success),
                "failedComponents": sum(1 for result in all_results if not result.success),
            },
            "scores": self.scorer.score(detectors, heuristics),
            "services": {
                "detected": pick(services, "services", "external", default=[]),
                "byCategory": pick(services, "categories", "counts", default={}),
                "domains": pick(services, "domains", "external", default=[]),
            },
            "performance": {
                "score": pick(performance, "score"),
                "impactLevel": pick(performance, "impactLevel"),
                "estimatedLoadTime": pick(performance, "estimatedLoadTime", default=0),
                "totalEstimatedSize": pick(performance, "totalEstimatedSize", default=0),
                "blocking": pick(performance, "blocking", default={}),
                "services": pick(performance, "services", default=[]),
                "potentialSavings": pick(performance_heuristic, "potentialSavings", default=0),
            },
            "security": {
                "privacyRisk": pick(privacy, "riskScore", default=0),
                "privacyRiskLevel": pick(privacy, "riskLevel"),
                "tracking": pick(privacy, "tracking", "services", default=[]),
                "consent": pick(privacy, "consent", default={}),
                "transport": pick(privacy, "transport", default={}),
                "integrity": pick(privacy, "integrity", default={}),
                "concerns": pick(privacy, "concerns", default=[]),
                "vulnerabilities": pick(dependencies, "vulnerabilities", "detected", default=[]),
                "compliance": pick(security_heuristic, "compliance", default={}),
            },
            "dependencies": {
                "statistics": pick(dependencies, "graph", "statistics", default={}),
                "circularDependencies": pick(dependencies, "circularDependencies"),
                "criticalPath": pick(dependencies, "criticalPath"),
                "clusters": pick(dependencies, "clusters", default=[]),
                "versions": pick(dependencies, "versions"),
                "loadingOrder": pick(dependencies, "loadingOrder"),
                "complexity": pick(dependencies, "complexity"),
            },
            "intelligence": {
                "keyFindings": [
                    {"source": result.component, "finding": finding}
                    for result in ordered(heuristics, HEURISTIC_ORDER)
                    for finding in result.get("keyFindings", default=[])
                ],
            },
            "optimization": self._optimization(heuristics),
            "recommendations": recommendations,
        }

    @staticmethod
    def _recommendations(detectors, heuristics) -> List[Dict[str, Any]]:
        """Every successful component's recommendations, concatenated in component order."""
        combined = []
        for result in ordered(detectors, DETECTOR_ORDER) + ordered(heuristics, HEURISTIC_ORDER):
            for recommendation in _entries(result, "recommendations"):
                combined.append({
                    **recommendation,
                    "priority": recommendation.get("priority", "medium"),
                    "source": result.component,
                    "phase": result.phase,
                })
        return combined

    @staticmethod
    def _optimization(heuristics) -> Dict[str, Any]:
        by_area: Dict[str, List[dict]] = {}
        for result in ordered(heuristics, HEURISTIC_ORDER):
            for opportunity in _entries(result, "opportunities"):
                by_area.setdefault(opportunity.get("area", "general"), []).append(
                    {**opportunity, "source": result.component}
                )
        return {
            "opportunities": by_area,
            "total": sum(len(entries) for entries in by_area.values()),
        }


def build_legacy_view(combined: Dict[str, Any]) -> Dict[str, Any]:
    """Flat projection of `combined` for callers of the older result shape. Adds no new data."""
    summary = combined["summary"]
    services = combined["services"]
    performance = combined["performance"]
    security = combined["security"]
    recommendations = combined["recommendations"]
    detected = services["detected"]

    cdn_services = [service for service in detected if service.get("category") == "cdn"]
    return {
        "scripts": {
            "total": summary["totalServices"],
            "external": [service for service in detected if service.get("type") == "script"],
            "categories": services["byCategory"],
        },
        "tracking": {
            "services": security["tracking"],
            "count": summary["trackingServices"],
        },
        "performanceImpact": {
            "score": performance["score"],
            "impactLevel": performance["impactLevel"],
            "estimatedLoadTime": performance["estimatedLoadTime"],
            "blockingResources": summary["blockingResources"],
        },
        "privacyImplications": {
            "riskScore": security["privacyRisk"],
            "riskLevel": legacy_risk_level(security["privacyRisk"]),
            "consentDetected": security["consent"].get("detected", False),
            "concerns": security["concerns"],
        },
        "cdnUsage": {
            "services": cdn_services,
            "count": len(cdn_services),
            "recommendations": [r for r in recommendations if r.get("type") in CDN_RECOMMENDATION_TYPES],
        },
        "summary": {
            "totalThirdPartyServices": summary["totalServices"],
            "categories": summary["categories"],
            "domains": summary["externalDomains"],
        },
        "recommendations": [r for r in recommendations if r["priority"] in ("critical", "high")],
        "thirdPartyScore": round(combined["scores"]["overall"]),
    }
