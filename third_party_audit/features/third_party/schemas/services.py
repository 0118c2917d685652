"""
Known-service descriptors.

Each vendor category is its own variant with a fixed field set; the
`category` literal is the discriminator.
"""
from enum import Enum
from typing import Literal, Optional, Tuple, Union

from pydantic import Field
from typing_extensions import Annotated

from third_party_audit.features.third_party.schemas.base import CamelModel


class ServiceCategory(str, Enum):
    analytics = "analytics"
    advertising = "advertising"
    social = "social"
    cdn = "cdn"
    utilities = "utilities"
    tracking = "tracking"
    framework = "framework"


ImpactLevel = Literal["positive", "low", "medium", "high"]
PrivacyLevel = Literal["low", "medium", "high"]


class _KnownServiceBase(CamelModel):
    name: str
    patterns: Tuple[str, ...]
    confidence: float = 0.9
    impact: ImpactLevel = "medium"
    # How privacy-friendly the vendor is ("low" means invasive)
    privacy: PrivacyLevel = "medium"
    critical: bool = False
    dependencies: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()


class AnalyticsService(_KnownServiceBase):
    category: Literal["analytics"] = "analytics"
    load_order: Literal["early", "deferred", "lazy"] = "early"
    data_flow: Tuple[str, ...] = ()


class AdvertisingService(_KnownServiceBase):
    category: Literal["advertising"] = "advertising"
    data_flow: Tuple[str, ...] = ()


class SocialService(_KnownServiceBase):
    category: Literal["social"] = "social"
    alternatives: Tuple[str, ...] = ()


class CdnService(_KnownServiceBase):
    category: Literal["cdn"] = "cdn"
    reliability: Literal["low", "medium", "high"] = "high"
    fallbacks: Tuple[str, ...] = ()


class UtilityService(_KnownServiceBase):
    category: Literal["utilities"] = "utilities"


class TrackingService(_KnownServiceBase):
    category: Literal["tracking"] = "tracking"
    data_flow: Tuple[str, ...] = ()


class FrameworkService(_KnownServiceBase):
    category: Literal["framework"] = "framework"
    current_version: Optional[str] = None
    supported_versions: Tuple[str, ...] = ()
    deprecated_versions: Tuple[str, ...] = ()


KnownService = Annotated[
    Union[
        AnalyticsService,
        AdvertisingService,
        SocialService,
        CdnService,
        UtilityService,
        TrackingService,
        FrameworkService,
    ],
    Field(discriminator="category"),
]


class VulnerabilitySignature(CamelModel):
    name: str
    pattern: str
    severity: Literal["critical", "high", "medium", "low"]
    cve: Tuple[str, ...] = ()
    description: str = ""


class ImpactProfile(CamelModel):
    """Static load estimate for a family of third-party resources."""

    name: str
    patterns: Tuple[str, ...]
    avg_size: int
    load_time: int
    render_blocking: bool = False
    impact: Literal["low", "medium", "high"] = "medium"
