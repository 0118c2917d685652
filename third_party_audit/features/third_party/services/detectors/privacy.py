from typing import Any, Dict, List

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext
from third_party_audit.features.third_party.schemas.options import PrivacyOptions
from third_party_audit.features.third_party.schemas.resources import IdentifiedService
from third_party_audit.features.third_party.services.catalog import ServiceCatalog
from third_party_audit.features.third_party.services.detectors.base import BaseDetector
from third_party_audit.features.third_party.services.document import Document

CATEGORY_RISK = {
    "tracking": 0.9,
    "advertising": 0.85,
    "analytics": 0.7,
    "social": 0.6,
    "utilities": 0.3,
    "fonts": 0.3,
    "cdn": 0.1,
    "framework": 0.1,
}
UNKNOWN_RISK = 0.3

DATA_TYPES = {
    "analytics": ("behavioral", "device"),
    "advertising": ("behavioral", "cross_site", "demographic"),
    "tracking": ("behavioral", "session_replay", "form_data"),
    "social": ("social_interactions", "cross_site"),
}

# Known-service privacy rating shifts the category risk
PRIVACY_ADJUSTMENT = {"low": 0.1, "medium": 0.0, "high": -0.1}


def risk_level(risk_score: float) -> str:
    if risk_score >= 70:
        return "high"
    if risk_score >= 40:
        return "medium"
    return "low"


class PrivacyDetector(BaseDetector):
    """Data collection, consent, transport and integrity posture of third-party resources."""

    name = "privacy"

    def __init__(self, catalog: ServiceCatalog, options: PrivacyOptions = None):
        super().__init__(catalog, options or PrivacyOptions())

    @staticmethod
    def service_risk(service: IdentifiedService) -> float:
        risk = CATEGORY_RISK.get(service.category, UNKNOWN_RISK)
        if service.known is not None:
            risk += PRIVACY_ADJUSTMENT[service.known.privacy]
        return round(max(0.0, min(1.0, risk)), 2)

    async def analyze(self, document: Document, context: AnalysisContext) -> Dict[str, Any]:
        discovered = self.discover(document, context)
        services = self.third_party(discovered)

        collectors = [service for service in services if service.category in DATA_TYPES]
        tracking = [
            {
                "name": service.name,
                "category": service.category,
                "url": service.url,
                "riskScore": self.service_risk(service),
                "dataTypes": list(DATA_TYPES[service.category]),
            }
            for service in collectors
        ]
        data_types = sorted({data_type for entry in tracking for data_type in entry["dataTypes"]})

        consent_platforms = sorted({
            name for name in (self.catalog.consent_platform(service.url) for service in discovered) if name
        })
        insecure = [service.url for service in services if service.url.lower().startswith("http:")]

        external_scripts = [service for service in services if service.resource.type == "script"]
        with_integrity = [service for service in external_scripts if service.resource.has_attribute("integrity")]
        sri_coverage = len(with_integrity) / len(external_scripts) if external_scripts else 1.0

        risk_score = self._risk_score(services, collectors, bool(consent_platforms), len(insecure))
        security_score = self._security_score(len(insecure), len(external_scripts) - len(with_integrity))

        concerns = []
        if collectors and not consent_platforms:
            concerns.append("data_collection_without_consent_management")
        if any(entry["category"] in ("advertising", "tracking") for entry in tracking):
            concerns.append("cross_site_tracking")
        if "session_replay" in data_types:
            concerns.append("session_recording")
        if insecure:
            concerns.append("insecure_transport")
        if external_scripts and sri_coverage < 1.0:
            concerns.append("missing_subresource_integrity")

        return {
            "tracking": {"services": tracking, "count": len(tracking)},
            "dataCollection": {"collectors": len(collectors), "dataTypes": data_types},
            "consent": {"detected": bool(consent_platforms), "platforms": consent_platforms},
            "transport": {"insecureResources": insecure, "count": len(insecure)},
            "integrity": {
                "externalScripts": len(external_scripts),
                "withIntegrity": len(with_integrity),
                "coverage": round(sri_coverage, 2),
            },
            "riskScore": risk_score,
            "riskLevel": risk_level(risk_score),
            "exceedsThreshold": risk_score / 100 >= self.options.risk_threshold,
            "privacyScore": round(100 - risk_score, 1),
            "securityScore": security_score,
            "concerns": concerns,
            "recommendations": self._recommendations(concerns, insecure),
        }

    @staticmethod
    def _risk_score(services: List[IdentifiedService], collectors, has_consent: bool, insecure_count: int) -> float:
        if not services:
            return 0.0
        average = sum(PrivacyDetector.service_risk(service) for service in services) / len(services)
        score = average * 50
        score += min(len(collectors) * 5, 30)
        if collectors and not has_consent:
            score += 15
        score += insecure_count * 5
        return round(min(100.0, score), 1)

    @staticmethod
    def _security_score(insecure_count: int, scripts_without_integrity: int) -> float:
        score = 100 - insecure_count * 15 - scripts_without_integrity * 5
        return float(max(0, score))

    @staticmethod
    def _recommendations(concerns: List[str], insecure: List[str]) -> List[dict]:
        recommendations = []
        if "data_collection_without_consent_management" in concerns:
            recommendations.append({
                "type": "add_consent_management",
                "priority": "critical",
                "title": "Add a consent management platform",
                "description": "Tracking services load without any detected consent management",
            })
        if "insecure_transport" in concerns:
            recommendations.append({
                "type": "use_https_resources",
                "priority": "high",
                "title": "Load third-party resources over HTTPS",
                "description": f"{len(insecure)} resources are requested over plain HTTP",
                "targets": insecure,
            })
        if "missing_subresource_integrity" in concerns:
            recommendations.append({
                "type": "add_subresource_integrity",
                "priority": "medium",
                "title": "Add integrity attributes to external scripts",
                "description": "External scripts without Subresource Integrity can be tampered with",
            })
        if "cross_site_tracking" in concerns:
            recommendations.append({
                "type": "minimize_tracking",
                "priority": "medium",
                "title": "Minimize cross-site tracking",
                "description": "Advertising or tracking services share visitor data across sites",
            })
        return recommendations
