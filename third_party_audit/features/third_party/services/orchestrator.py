"""
Two-phase third-party analysis.

Phase one runs every enabled detector concurrently against the same
read-only document; phase two runs every enabled heuristic concurrently
against the complete detector result set. Each phase is a barrier: it
returns only when every component has succeeded, failed or timed out.
Failures travel as data (`AnalysisPhaseResult.success is False`), never as
exceptions across the phase boundary.
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from third_party_audit.features.third_party.schemas.analysis import (
    AnalysisContext,
    AnalysisPhaseResult,
    PhaseError,
)
from third_party_audit.features.third_party.schemas.options import AnalyzerOptions
from third_party_audit.features.third_party.services.catalog import DEFAULT_CATALOG, ServiceCatalog
from third_party_audit.features.third_party.services.combiner import ResultCombiner, build_legacy_view
from third_party_audit.features.third_party.services.detectors.dependency_mapping import DependencyMappingDetector
from third_party_audit.features.third_party.services.detectors.performance_impact import PerformanceImpactDetector
from third_party_audit.features.third_party.services.detectors.privacy import PrivacyDetector
from third_party_audit.features.third_party.services.detectors.service_detector import ServiceDetector
from third_party_audit.features.third_party.services.document import ensure_document
from third_party_audit.features.third_party.services.heuristics.performance import PerformanceHeuristic
from third_party_audit.features.third_party.services.heuristics.security import SecurityHeuristic
from third_party_audit.features.third_party.services.heuristics.strategy import StrategyHeuristic
from third_party_audit.features.third_party.services.scoring import WeightedScorer
from third_party_audit.platform.exceptions import ComponentTimeoutError, InvalidDocumentError
from third_party_audit.platform.logger import get_logger

logger = get_logger(__name__)

ContextInput = Union[AnalysisContext, Mapping[str, Any], None]


def elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class ThirdPartyAnalyzer:
    name = "ThirdPartyAnalyzer"
    version = "2.0.0"

    def __init__(
        self,
        options: Optional[AnalyzerOptions] = None,
        catalog: ServiceCatalog = DEFAULT_CATALOG,
        detectors: Optional[Dict[str, Any]] = None,
        heuristics: Optional[Dict[str, Any]] = None,
    ):
        self.options = options or AnalyzerOptions()
        self.catalog = catalog
        self.detectors = detectors if detectors is not None else self._default_detectors()
        self.heuristics = heuristics if heuristics is not None else self._default_heuristics()
        self.combiner = ResultCombiner(WeightedScorer(self.options.score_weights))

    def _default_detectors(self) -> Dict[str, Any]:
        options = self.options
        registry = {}
        if options.enable_service_detection:
            registry["services"] = ServiceDetector(self.catalog, options.service_detector)
        if options.enable_performance_analysis:
            registry["performance"] = PerformanceImpactDetector(self.catalog, options.performance_impact)
        if options.enable_privacy_analysis:
            registry["privacy"] = PrivacyDetector(self.catalog, options.privacy)
        if options.enable_dependency_mapping:
            registry["dependencies"] = DependencyMappingDetector(self.catalog, options.dependency_mapping)
        return registry

    def _default_heuristics(self) -> Dict[str, Any]:
        options = self.options
        registry = {}
        if options.enable_performance_heuristics:
            registry["performance"] = PerformanceHeuristic(options.performance_heuristic)
        if options.enable_security_heuristics:
            registry["security"] = SecurityHeuristic(options.security_heuristic)
        if options.enable_strategy_heuristics:
            registry["strategy"] = StrategyHeuristic(options.strategy_heuristic)
        return registry

    async def analyze(self, document, context: ContextInput = None) -> Dict[str, Any]:
        """
        Analyze a document's third-party resources.

        Always returns a result dict. An unusable document or context gives
        `success: False`; component failures give `success: True` with the
        failures listed in `state.errors`.
        """
        start = time.perf_counter()
        timestamp = datetime.now(timezone.utc).isoformat()

        try:
            context = self._context(context)
            document = ensure_document(document, context.url)
        except (InvalidDocumentError, ValidationError) as e:
            logger.error(f"Third-party analysis rejected input: {e}")
            return self._input_failure(timestamp, start, str(e))

        errors: List[PhaseError] = []
        warnings: List[str] = []
        logger.info(f"Starting third-party analysis for {context.url or 'inline document'}")

        phase_start = time.perf_counter()
        detector_results = await self._run_phase(
            "detector", self.detectors, lambda detector: detector.analyze(document, context), errors
        )
        detector_ms = elapsed_ms(phase_start)

        failed_detectors = [key for key, result in detector_results.items() if not result.success]
        if failed_detectors and self.heuristics:
            warnings.append(f"Heuristics ran without results from: {', '.join(failed_detectors)}")

        phase_start = time.perf_counter()
        heuristic_results = await self._run_phase(
            "heuristic", self.heuristics, lambda heuristic: heuristic.analyze(detector_results, context), errors
        )
        heuristic_ms = elapsed_ms(phase_start)

        phase_start = time.perf_counter()
        combined = self.combiner.combine(detector_results, heuristic_results)
        combination_ms = elapsed_ms(phase_start)

        if not self.detectors:
            warnings.append("No detectors enabled")

        total_ms = elapsed_ms(start)
        logger.info(
            f"Third-party analysis finished in {total_ms}ms "
            f"({len(errors)} failed components, overall score {combined['scores']['overall']})"
        )

        result = {
            "success": True,
            "timestamp": timestamp,
            "detectors": {key: value.to_dict() for key, value in detector_results.items()},
            "heuristics": {key: value.to_dict() for key, value in heuristic_results.items()},
            "combined": combined,
            "metadata": self.metadata(),
            "performance": {
                "detectorPhase": detector_ms,
                "heuristicPhase": heuristic_ms,
                "combination": combination_ms,
                "total": total_ms,
            },
            "state": {
                "errors": [error.to_dict() for error in errors],
                "warnings": warnings,
            },
            "executionTime": total_ms,
        }
        if self.options.enable_legacy_view:
            result["legacy"] = build_legacy_view(combined)
        return result

    async def _run_phase(
        self,
        phase: str,
        components: Mapping[str, Any],
        invoke: Callable[[Any], Awaitable[Dict[str, Any]]],
        errors: List[PhaseError],
    ) -> Dict[str, AnalysisPhaseResult]:
        keys = list(components)
        logger.info(f"Running {len(keys)} {phase}s: {', '.join(keys) or 'none'}")
        settled = await asyncio.gather(
            *(self._invoke(phase, key, components[key], invoke) for key in keys)
        )

        results = dict(zip(keys, settled))
        for result in settled:
            if not result.success:
                errors.append(PhaseError(phase=phase, component=result.component, error=result.error))
        return results

    async def _invoke(self, phase: str, key: str, component, invoke) -> AnalysisPhaseResult:
        start = time.perf_counter()
        timeout = self.options.component_timeout
        try:
            data = await asyncio.wait_for(invoke(component), timeout=timeout)
            return AnalysisPhaseResult(
                component=key, phase=phase, success=True, data=data, execution_time=elapsed_ms(start)
            )
        except asyncio.TimeoutError:
            error = str(ComponentTimeoutError(key, timeout))
            logger.error(f"{phase} {error}")
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"{phase} {key} failed: {error}", exc_info=True)

        return AnalysisPhaseResult(
            component=key, phase=phase, success=False, error=error, execution_time=elapsed_ms(start)
        )

    @staticmethod
    def _context(context: ContextInput) -> AnalysisContext:
        if context is None:
            return AnalysisContext()
        if isinstance(context, AnalysisContext):
            return context
        if not isinstance(context, Mapping):
            raise InvalidDocumentError(f"Context must be a mapping, got {type(context).__name__}")
        return AnalysisContext.model_validate(dict(context))

    def _input_failure(self, timestamp: str, start: float, message: str) -> Dict[str, Any]:
        total_ms = elapsed_ms(start)
        return {
            "success": False,
            "error": message,
            "timestamp": timestamp,
            "detectors": {},
            "heuristics": {},
            "combined": {},
            "metadata": self.metadata(),
            "performance": {"detectorPhase": 0.0, "heuristicPhase": 0.0, "combination": 0.0, "total": total_ms},
            "state": {
                "errors": [PhaseError(phase="input", component="document", error=message).to_dict()],
                "warnings": [],
            },
            "executionTime": total_ms,
        }

    def metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "detectors": list(self.detectors),
            "heuristics": list(self.heuristics),
            "thresholds": {
                "performanceImpact": self.options.performance_impact.impact_threshold,
                "privacyRisk": self.options.privacy.risk_threshold,
                "dependencyComplexity": self.options.dependency_mapping.complexity_threshold,
            },
            "configuration": self.options.model_dump(mode="json"),
            "catalog": self.catalog.describe(),
        }
