from typing import Any, Dict, Mapping

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext, AnalysisPhaseResult

DetectorResults = Mapping[str, AnalysisPhaseResult]


class BaseHeuristic:
    """
    Heuristics read the complete detector result set as an opaque bag.

    A failed or missing detector simply yields the default, so heuristics
    degrade instead of failing when part of phase one did not succeed.
    """

    name = "heuristic"

    def __init__(self, options=None):
        self.options = options

    @staticmethod
    def lookup(results: DetectorResults, component: str, *path: str, default: Any = None) -> Any:
        result = results.get(component)
        if result is None:
            return default
        return result.get(*path, default=default)

    async def analyze(self, detector_results: DetectorResults, context: AnalysisContext) -> Dict[str, Any]:
        raise NotImplementedError


def clamp_score(score: float) -> float:
    return round(max(0.0, min(100.0, score)), 1)
