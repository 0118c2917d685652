from typing import Any, Dict, List, Mapping, Optional, Tuple

from third_party_audit.features.third_party.schemas.analysis import AnalysisPhaseResult
from third_party_audit.features.third_party.schemas.options import ScoreWeights

# category -> (phase, component, key) for every score that feeds it
SCORE_CONTRIBUTORS: Dict[str, Tuple[Tuple[str, str, str], ...]] = {
    "performance": (("detector", "performance", "score"),),
    "security": (("detector", "privacy", "securityScore"), ("heuristic", "security", "securityScore")),
    "privacy": (("detector", "privacy", "privacyScore"),),
    "governance": (("heuristic", "strategy", "governanceScore"),),
}


class WeightedScorer:
    """
    Category scores on a 0-100 scale and their weighted overall.

    A category with no successful contributor is reported as None and left
    out of the overall average rather than counted as zero.
    """

    def __init__(self, weights: ScoreWeights = None):
        self.weights = weights or ScoreWeights()

    def score(
        self,
        detectors: Mapping[str, AnalysisPhaseResult],
        heuristics: Mapping[str, AnalysisPhaseResult],
    ) -> Dict[str, Any]:
        phases = {"detector": detectors, "heuristic": heuristics}
        scores: Dict[str, Optional[float]] = {}
        categories: List[Dict[str, Any]] = []

        for category, contributors in SCORE_CONTRIBUTORS.items():
            values, sources = [], []
            for phase, component, key in contributors:
                result = phases[phase].get(component)
                value = result.get(key) if result is not None else None
                if isinstance(value, (int, float)):
                    values.append(float(value))
                    sources.append(f"{phase}.{component}")
            category_score = round(sum(values) / len(values), 1) if values else None
            scores[category] = category_score
            categories.append({
                "category": category,
                "score": category_score,
                "weight": self.weights.weight_for(category),
                "contributors": sources,
            })

        present = [(scores[c], self.weights.weight_for(c)) for c in SCORE_CONTRIBUTORS if scores[c] is not None]
        total_weight = sum(weight for _, weight in present)
        overall = round(sum(s * w for s, w in present) / total_weight, 1) if total_weight else 0.0

        return {**scores, "overall": overall, "categories": categories}
