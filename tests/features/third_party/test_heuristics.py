import pytest

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext, AnalysisPhaseResult
from third_party_audit.features.third_party.schemas.options import (
    PerformanceHeuristicOptions,
    StrategyHeuristicOptions,
)
from third_party_audit.features.third_party.services.heuristics.performance import PerformanceHeuristic
from third_party_audit.features.third_party.services.heuristics.security import SecurityHeuristic
from third_party_audit.features.third_party.services.heuristics.strategy import StrategyHeuristic


def succeeded(component, data):
    return AnalysisPhaseResult(component=component, phase="detector", success=True, data=data)


def failed(component):
    return AnalysisPhaseResult(component=component, phase="detector", success=False, error="boom")


def estimate(name, load_time, blocking, resource_type="script", impact="medium"):
    return {
        "name": name,
        "url": f"https://{name.lower()}.example.net/{name.lower()}.js",
        "type": resource_type,
        "category": "other",
        "estimatedLoadTime": load_time,
        "estimatedSize": 10_000,
        "impact": impact,
        "renderBlocking": blocking,
    }


@pytest.fixture
def context():
    return AnalysisContext(url="https://shop.example.com/")


class TestPerformanceHeuristic:
    @pytest.fixture
    def detector_results(self):
        return {
            "performance": succeeded("performance", {
                "services": [
                    estimate("Alpha", 400, True),
                    estimate("Beta", 600, True),
                    estimate("Fonts", 600, True, resource_type="stylesheet"),
                    estimate("Video", 1200, False, resource_type="iframe", impact="high"),
                ],
            }),
            "services": succeeded("services", {
                "services": {"external": [
                    {"name": "Video", "type": "iframe", "loadingPattern": "async", "url": "https://video.example.net/"},
                ]},
                "domains": {"external": ["a.example.net", "b.example.net"]},
                "categories": {"counts": {"analytics": 2}},
            }),
        }

    @pytest.mark.asyncio
    async def test_balanced_opportunities(self, detector_results, context):
        data = await PerformanceHeuristic().analyze(detector_results, context)

        assert [entry["type"] for entry in data["opportunities"]] == [
            "async_defer_scripts",
            "lazy_load_iframes",
            "consolidate_tag_managers",
        ]
        assert data["potentialSavings"] == 1000
        assert data["optimizationPlan"]["immediate"] == ["async_defer_scripts"]
        assert data["serviceImpact"][0]["recommendation"] == "load_async"
        assert data["serviceImpact"][3]["recommendation"] == "keep"

    @pytest.mark.asyncio
    async def test_conservative_level_keeps_high_priority_only(self, detector_results, context):
        heuristic = PerformanceHeuristic(PerformanceHeuristicOptions(optimization_level="conservative"))

        data = await heuristic.analyze(detector_results, context)

        assert [entry["type"] for entry in data["opportunities"]] == ["async_defer_scripts"]
        assert [entry["type"] for entry in data["recommendations"]] == ["async_defer_scripts"]

    @pytest.mark.asyncio
    async def test_preconnect_hints_at_aggressive_level(self, detector_results, context):
        heuristic = PerformanceHeuristic(
            PerformanceHeuristicOptions(optimization_level="aggressive", preconnect_domain_threshold=2)
        )

        data = await heuristic.analyze(detector_results, context)

        hints = next(e for e in data["opportunities"] if e["type"] == "add_preconnect_hints")
        assert hints["targets"] == ["a.example.net", "b.example.net"]

    @pytest.mark.asyncio
    async def test_failed_detectors_degrade_to_empty(self, context):
        data = await PerformanceHeuristic().analyze(
            {"performance": failed("performance"), "services": failed("services")}, context
        )

        assert data["opportunities"] == []
        assert data["potentialSavings"] == 0
        assert data["keyFindings"] == []


class TestSecurityHeuristic:
    @pytest.mark.asyncio
    async def test_vulnerability_and_missing_consent(self, context):
        detector_results = {
            "dependencies": succeeded("dependencies", {
                "vulnerabilities": {"detected": [{"service": "jQuery", "severity": "high"}]},
            }),
            "privacy": succeeded("privacy", {
                "transport": {"insecureResources": []},
                "integrity": {"externalScripts": 2, "withIntegrity": 2, "coverage": 1.0},
                "consent": {"detected": False},
                "tracking": {"services": [{"name": "Facebook Pixel", "category": "advertising"}]},
            }),
        }

        data = await SecurityHeuristic().analyze(detector_results, context)

        # 15 for the high vulnerability, 10 each for GDPR and CCPA
        assert data["securityScore"] == 65.0
        assert data["compliance"]["gdpr"]["status"] == "non_compliant"
        assert data["compliance"]["ccpa"]["status"] == "non_compliant"
        assert data["vulnerabilities"]["bySeverity"]["high"] == 1
        types = [entry["type"] for entry in data["opportunities"]]
        assert types == ["patch_vulnerable_libraries", "implement_consent_management"]

    @pytest.mark.asyncio
    async def test_consent_makes_tracking_compliant(self, context):
        detector_results = {
            "privacy": succeeded("privacy", {
                "consent": {"detected": True},
                "tracking": {"services": [{"name": "Google Analytics", "category": "analytics"}]},
            }),
        }

        data = await SecurityHeuristic().analyze(detector_results, context)

        assert data["compliance"]["gdpr"]["status"] == "compliant"
        assert data["compliance"]["ccpa"]["status"] == "compliant"
        assert data["securityScore"] == 100.0
        assert data["riskLevel"] == "low"

    @pytest.mark.asyncio
    async def test_insecure_transport_and_integrity(self, context):
        detector_results = {
            "privacy": succeeded("privacy", {
                "transport": {"insecureResources": ["http://a.example.net/a.js"]},
                "integrity": {"externalScripts": 2, "withIntegrity": 1, "coverage": 0.5},
            }),
        }

        data = await SecurityHeuristic().analyze(detector_results, context)

        assert data["securityScore"] == 80.0
        assert data["transport"]["secure"] is False
        assert {"enforce_https", "add_subresource_integrity"} <= {e["type"] for e in data["opportunities"]}


class TestStrategyHeuristic:
    @pytest.fixture
    def detector_results(self):
        return {
            "services": succeeded("services", {
                "categories": {"byCategory": {
                    "analytics": [{"name": "Google Analytics"}, {"name": "Hotjar"}],
                    "cdn": [{"name": "jsDelivr"}, {"name": "unpkg"}],
                }},
                "summary": {"totalServices": 4, "unknownServices": 0},
            }),
            "dependencies": succeeded("dependencies", {
                "graph": {
                    "nodes": [{"id": "script_a", "name": "React"}, {"id": "script_b", "name": "Vue.js"}],
                    "edges": [{"from": "script_a", "to": "script_b", "type": "conflicting"}],
                },
                "circularDependencies": {"count": 0},
            }),
        }

    @pytest.mark.asyncio
    async def test_redundancy_and_conflicts(self, detector_results, context):
        data = await StrategyHeuristic().analyze(detector_results, context)

        assert data["portfolio"]["redundancy"] == {"analytics": ["Google Analytics", "Hotjar"]}
        assert data["dependencyOptimization"]["conflicts"] == [{"from": "React", "to": "Vue.js"}]
        assert data["governanceScore"] == 80.0
        assert [e["type"] for e in data["opportunities"]] == [
            "reduce_vendor_redundancy",
            "resolve_framework_conflicts",
        ]

    @pytest.mark.asyncio
    async def test_unknown_services_cost_less_in_development(self, context):
        detector_results = {
            "services": succeeded("services", {"summary": {"totalServices": 3, "unknownServices": 3}}),
        }

        production = await StrategyHeuristic().analyze(detector_results, context)
        development = await StrategyHeuristic(StrategyHeuristicOptions(analysis_mode="development")).analyze(
            detector_results, context
        )

        assert production["governanceScore"] == 91.0
        assert development["governanceScore"] == 97.0

    @pytest.mark.asyncio
    async def test_failed_inputs_yield_clean_score(self, context):
        data = await StrategyHeuristic().analyze(
            {"services": failed("services"), "dependencies": failed("dependencies")}, context
        )

        assert data["governanceScore"] == 100.0
        assert data["opportunities"] == []
