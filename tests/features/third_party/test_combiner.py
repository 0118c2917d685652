import copy

import pytest

from third_party_audit.features.third_party.schemas.analysis import AnalysisPhaseResult
from third_party_audit.features.third_party.schemas.options import ScoreWeights
from third_party_audit.features.third_party.services.combiner import (
    ResultCombiner,
    build_legacy_view,
    legacy_risk_level,
)
from third_party_audit.features.third_party.services.scoring import WeightedScorer


def result(component, data, phase="detector"):
    return AnalysisPhaseResult(component=component, phase=phase, success=True, data=data)


def failure(component, phase="detector"):
    return AnalysisPhaseResult(component=component, phase=phase, success=False, error=f"{component} failed")


@pytest.fixture
def detectors():
    return {
        "services": result("services", {
            "services": {"external": [
                {"name": "jsDelivr", "category": "cdn", "type": "script"},
                {"name": "Google Analytics", "category": "analytics", "type": "script"},
            ]},
            "categories": {"counts": {"cdn": 1, "analytics": 1}},
            "domains": {"external": ["cdn.jsdelivr.net", "www.google-analytics.com"]},
            "summary": {"totalServices": 2, "knownServices": 2, "externalDomains": 2, "categoryCount": 2},
        }),
        "performance": result("performance", {
            "score": 60.0,
            "impactLevel": "medium",
            "estimatedLoadTime": 1200,
            "blocking": {"total": 2},
            "recommendations": [{"type": "defer_third_party_scripts", "priority": "high"}],
        }),
        "privacy": result("privacy", {
            "securityScore": 80.0,
            "privacyScore": 70.0,
            "riskScore": 30.0,
            "riskLevel": "low",
            "tracking": {"services": [{"name": "Google Analytics"}], "count": 1},
            "consent": {"detected": False},
            "concerns": ["data_collection_without_consent_management"],
            "recommendations": [{"type": "use_https_resources", "priority": "high"}],
        }),
    }


@pytest.fixture
def heuristics():
    return {
        "security": result("security", {
            "securityScore": 90.0,
            "keyFindings": ["Tracking services load without consent management"],
            "opportunities": [{"type": "enforce_https", "area": "security", "priority": "high"}],
            "recommendations": [{"type": "enforce_https", "title": "Serve over HTTPS"}],
        }, phase="heuristic"),
        "strategy": result("strategy", {"governanceScore": 50.0}, phase="heuristic"),
    }


class TestWeightedScorer:
    def test_category_scores(self, detectors, heuristics):
        scores = WeightedScorer().score(detectors, heuristics)

        assert scores["performance"] == 60.0
        assert scores["security"] == 85.0
        assert scores["privacy"] == 70.0
        assert scores["governance"] == 50.0
        assert scores["overall"] == pytest.approx(0.3 * 60 + 0.25 * 85 + 0.25 * 70 + 0.2 * 50, abs=0.1)
        security = next(entry for entry in scores["categories"] if entry["category"] == "security")
        assert security["contributors"] == ["detector.privacy", "heuristic.security"]

    def test_missing_categories_are_excluded_from_overall(self, detectors, heuristics):
        detectors["privacy"] = failure("privacy")
        del heuristics["security"]

        scores = WeightedScorer().score(detectors, heuristics)

        assert scores["security"] is None
        assert scores["privacy"] is None
        assert scores["overall"] == pytest.approx((0.3 * 60 + 0.2 * 50) / 0.5, abs=0.1)

    def test_nothing_to_score(self):
        scores = WeightedScorer().score({}, {})
        assert scores["overall"] == 0.0
        assert all(scores[category] is None for category in ("performance", "security", "privacy", "governance"))

    def test_custom_weights(self, detectors, heuristics):
        weights = ScoreWeights(performance=1.0, security=0.0, privacy=0.0, governance=0.0)
        assert WeightedScorer(weights).score(detectors, heuristics)["overall"] == 60.0


class TestResultCombiner:
    def test_summary_and_sections(self, detectors, heuristics):
        combined = ResultCombiner().combine(detectors, heuristics)

        assert combined["summary"]["totalServices"] == 2
        assert combined["summary"]["blockingResources"] == 2
        assert combined["summary"]["successfulComponents"] == 5
        assert combined["summary"]["failedComponents"] == 0
        assert combined["performance"]["score"] == 60.0
        assert combined["intelligence"]["keyFindings"] == [
            {"source": "security", "finding": "Tracking services load without consent management"}
        ]
        assert combined["optimization"]["total"] == 1
        assert combined["optimization"]["opportunities"]["security"][0]["source"] == "security"

    def test_recommendations_keep_component_order_and_source(self, detectors, heuristics):
        recommendations = ResultCombiner().combine(detectors, heuristics)["recommendations"]

        assert [(r["type"], r["source"], r["phase"]) for r in recommendations] == [
            ("defer_third_party_scripts", "performance", "detector"),
            ("use_https_resources", "privacy", "detector"),
            ("enforce_https", "security", "heuristic"),
        ]
        assert recommendations[2]["priority"] == "medium"

    def test_failed_components_fall_back_to_defaults(self, detectors, heuristics):
        detectors["performance"] = failure("performance")

        combined = ResultCombiner().combine(detectors, heuristics)

        assert combined["summary"]["failedComponents"] == 1
        assert combined["summary"]["estimatedLoadTime"] == 0
        assert combined["performance"]["score"] is None
        assert combined["scores"]["performance"] is None
        assert all(r["source"] != "performance" for r in combined["recommendations"])

    def test_malformed_recommendations_and_opportunities_are_skipped(self, detectors, heuristics):
        detectors["performance"].data["recommendations"] = ["defer scripts", None]
        detectors["privacy"].data["recommendations"] = "use https"
        heuristics["strategy"] = result("strategy", {"opportunities": ["consolidate analytics"]}, phase="heuristic")

        combined = ResultCombiner().combine(detectors, heuristics)

        assert [r["type"] for r in combined["recommendations"]] == ["enforce_https"]
        assert combined["optimization"]["total"] == 1
        assert list(combined["optimization"]["opportunities"]) == ["security"]

    def test_combine_is_deterministic(self, detectors, heuristics):
        combiner = ResultCombiner()
        assert combiner.combine(detectors, heuristics) == combiner.combine(detectors, heuristics)


class TestLegacyView:
    def test_projection(self, detectors, heuristics):
        combined = ResultCombiner().combine(detectors, heuristics)

        legacy = build_legacy_view(combined)

        assert legacy["scripts"]["total"] == 2
        assert [s["name"] for s in legacy["cdnUsage"]["services"]] == ["jsDelivr"]
        assert [r["type"] for r in legacy["cdnUsage"]["recommendations"]] == ["use_https_resources"]
        assert legacy["privacyImplications"]["riskLevel"] == "low"
        assert legacy["privacyImplications"]["consentDetected"] is False
        assert [r["type"] for r in legacy["recommendations"]] == [
            "defer_third_party_scripts",
            "use_https_resources",
        ]
        assert legacy["thirdPartyScore"] == round(combined["scores"]["overall"])

    def test_projection_does_not_mutate_input(self, detectors, heuristics):
        combined = ResultCombiner().combine(detectors, heuristics)
        snapshot = copy.deepcopy(combined)

        build_legacy_view(combined)

        assert combined == snapshot

    @pytest.mark.parametrize("risk, expected", [(0, "low"), (49.9, "low"), (50, "medium"), (80, "high")])
    def test_legacy_risk_level(self, risk, expected):
        assert legacy_risk_level(risk) == expected
