"""
Analyzer configuration.

Every component receives its own frozen options struct through its
constructor; nothing in the analysis core reads module-level settings.
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FrozenOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ServiceDetectorOptions(FrozenOptions):
    detect_inline_services: bool = True
    include_internal: bool = True


class PerformanceImpactOptions(FrozenOptions):
    impact_threshold: float = 0.3
    # Estimates used for third-party resources that match no impact profile
    default_load_time_ms: int = 200
    default_size_bytes: int = 10_000
    critical_load_time_ms: int = 3000


class PrivacyOptions(FrozenOptions):
    risk_threshold: float = 0.7


class DependencyMappingOptions(FrozenOptions):
    complexity_threshold: float = 0.6
    max_blocking_resources: int = 3
    max_analytics_services: int = 2
    enable_critical_path: bool = True
    enable_circular_detection: bool = True
    enable_version_detection: bool = True
    enable_vulnerability_check: bool = True
    track_loading_order: bool = True


class PerformanceHeuristicOptions(FrozenOptions):
    optimization_level: Literal["conservative", "balanced", "aggressive"] = "balanced"
    preconnect_domain_threshold: int = 4


class SecurityHeuristicOptions(FrozenOptions):
    risk_threshold: float = 0.7


class StrategyHeuristicOptions(FrozenOptions):
    analysis_mode: Literal["production", "development"] = "production"
    redundancy_threshold: int = 2


class ScoreWeights(FrozenOptions):
    performance: float = 0.3
    security: float = 0.25
    privacy: float = 0.25
    governance: float = 0.2

    def weight_for(self, category: str) -> float:
        return getattr(self, category, 0.0)


class AnalyzerOptions(FrozenOptions):
    # Detection
    enable_service_detection: bool = True
    enable_performance_analysis: bool = True
    enable_privacy_analysis: bool = True
    enable_dependency_mapping: bool = True

    # Heuristics
    enable_performance_heuristics: bool = True
    enable_security_heuristics: bool = True
    enable_strategy_heuristics: bool = True

    enable_legacy_view: bool = False

    # Seconds a single detector or heuristic may run before it is failed
    component_timeout: float = Field(default=30.0, gt=0)

    service_detector: ServiceDetectorOptions = Field(default_factory=ServiceDetectorOptions)
    performance_impact: PerformanceImpactOptions = Field(default_factory=PerformanceImpactOptions)
    privacy: PrivacyOptions = Field(default_factory=PrivacyOptions)
    dependency_mapping: DependencyMappingOptions = Field(default_factory=DependencyMappingOptions)
    performance_heuristic: PerformanceHeuristicOptions = Field(default_factory=PerformanceHeuristicOptions)
    security_heuristic: SecurityHeuristicOptions = Field(default_factory=SecurityHeuristicOptions)
    strategy_heuristic: StrategyHeuristicOptions = Field(default_factory=StrategyHeuristicOptions)
    score_weights: ScoreWeights = Field(default_factory=ScoreWeights)

    @classmethod
    def from_settings(cls, settings) -> "AnalyzerOptions":
        return cls(
            enable_service_detection=settings.ENABLE_SERVICE_DETECTION,
            enable_performance_analysis=settings.ENABLE_PERFORMANCE_ANALYSIS,
            enable_privacy_analysis=settings.ENABLE_PRIVACY_ANALYSIS,
            enable_dependency_mapping=settings.ENABLE_DEPENDENCY_MAPPING,
            enable_performance_heuristics=settings.ENABLE_PERFORMANCE_HEURISTICS,
            enable_security_heuristics=settings.ENABLE_SECURITY_HEURISTICS,
            enable_strategy_heuristics=settings.ENABLE_STRATEGY_HEURISTICS,
            enable_legacy_view=settings.ENABLE_LEGACY_VIEW,
            component_timeout=settings.COMPONENT_TIMEOUT_SECONDS,
            performance_impact=PerformanceImpactOptions(
                impact_threshold=settings.PERFORMANCE_IMPACT_THRESHOLD
            ),
            privacy=PrivacyOptions(risk_threshold=settings.PRIVACY_RISK_THRESHOLD),
            dependency_mapping=DependencyMappingOptions(
                complexity_threshold=settings.DEPENDENCY_COMPLEXITY_THRESHOLD
            ),
            security_heuristic=SecurityHeuristicOptions(
                risk_threshold=settings.PRIVACY_RISK_THRESHOLD
            ),
        )
