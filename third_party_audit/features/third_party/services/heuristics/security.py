from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import SecurityHeuristicOptions
from third_party_audit.features.third_party.services.heuristics.base import (
    BaseHeuristic,
    DetectorResults,
    clamp_score,
)

SEVERITY_PENALTY = {"critical": 25, "high": 15, "medium": 8, "low": 3}


class SecurityHeuristic(BaseHeuristic):
    """Security and compliance posture rolled up from the privacy and dependency detectors."""

    name = "security"

    def __init__(self, options: SecurityHeuristicOptions = None):
        super().__init__(options or SecurityHeuristicOptions())

    async def analyze(self, detector_results: DetectorResults, context: AnalysisContext) -> Dict[str, Any]:
        vulnerabilities = self.lookup(detector_results, "dependencies", "vulnerabilities", "detected", default=[])
        insecure = self.lookup(detector_results, "privacy", "transport", "insecureResources", default=[])
        integrity = self.lookup(detector_results, "privacy", "integrity", default={})
        consent = self.lookup(detector_results, "privacy", "consent", "detected", default=False)
        tracking = self.lookup(detector_results, "privacy", "tracking", "services", default=[])
        summary = self.lookup(detector_results, "services", "summary", default={})

        by_severity = {severity: 0 for severity in SEVERITY_PENALTY}
        for entry in vulnerabilities:
            by_severity[entry["severity"]] += 1

        coverage = integrity.get("coverage", 1.0)
        compliance = self._compliance(tracking, consent)

        score = 100.0
        score -= sum(SEVERITY_PENALTY[severity] * count for severity, count in by_severity.items())
        score -= len(insecure) * 10
        score -= (1 - coverage) * 20
        score -= sum(10 for view in compliance.values() if view["status"] == "non_compliant")
        score = clamp_score(score)
        risk = (100 - score) / 100

        opportunities = self._opportunities(by_severity, insecure, coverage, compliance)
        key_findings = []
        if vulnerabilities:
            key_findings.append(f"{len(vulnerabilities)} known vulnerabilities in third-party libraries")
        if compliance["gdpr"]["status"] == "non_compliant":
            key_findings.append("Tracking services load without consent management")

        return {
            "vulnerabilities": {"total": len(vulnerabilities), "bySeverity": by_severity},
            "integrity": {
                "coverage": coverage,
                "externalScripts": integrity.get("externalScripts", 0),
                "withIntegrity": integrity.get("withIntegrity", 0),
            },
            "transport": {"insecureResources": insecure, "secure": not insecure},
            "compliance": compliance,
            "governance": {
                "thirdPartyServices": summary.get("totalServices", 0),
                "unknownServices": summary.get("unknownServices", 0),
                "externalDomains": summary.get("externalDomains", 0),
            },
            "securityScore": score,
            "riskLevel": "high" if risk >= self.options.risk_threshold else "medium" if risk >= 0.4 else "low",
            "opportunities": opportunities,
            "keyFindings": key_findings,
            "recommendations": [
                {key: entry[key] for key in ("type", "priority", "title", "description")}
                for entry in opportunities
            ],
        }

    @staticmethod
    def _compliance(tracking: List[dict], consent_detected: bool) -> Dict[str, Dict[str, Any]]:
        collects = bool(tracking)
        sells = any(entry["category"] == "advertising" for entry in tracking)

        def status(required: bool) -> str:
            if not required:
                return "compliant"
            return "compliant" if consent_detected else "non_compliant"

        return {
            "gdpr": {"consentRequired": collects, "consentManagement": consent_detected, "status": status(collects)},
            "ccpa": {"optOutRequired": sells, "consentManagement": consent_detected, "status": status(sells)},
        }

    @staticmethod
    def _opportunities(by_severity, insecure, coverage, compliance) -> List[dict]:
        opportunities = []
        severe = by_severity["critical"] + by_severity["high"]
        if severe:
            opportunities.append({
                "type": "patch_vulnerable_libraries",
                "area": "security",
                "priority": "critical",
                "title": "Patch vulnerable third-party libraries",
                "description": f"{severe} critical or high severity vulnerabilities",
            })
        if insecure:
            opportunities.append({
                "type": "enforce_https",
                "area": "security",
                "priority": "high",
                "title": "Serve every third-party resource over HTTPS",
                "description": f"{len(insecure)} resources use plain HTTP",
            })
        if coverage < 1.0:
            opportunities.append({
                "type": "add_subresource_integrity",
                "area": "security",
                "priority": "medium",
                "title": "Pin external scripts with Subresource Integrity",
                "description": f"Integrity coverage is {coverage:.0%}",
            })
        if any(view["status"] == "non_compliant" for view in compliance.values()):
            opportunities.append({
                "type": "implement_consent_management",
                "area": "compliance",
                "priority": "high",
                "title": "Implement consent management",
                "description": "Data collection starts before visitors can consent or opt out",
            })
        return opportunities
