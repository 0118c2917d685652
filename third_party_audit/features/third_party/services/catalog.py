"""
Static vendor tables.

The catalog is plain configuration data: which URL patterns belong to which
named service, static load estimates, a stand-in CVE list and the patterns
used to label slow resources. It is built once and handed to every component
that needs it.
"""
import re
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from third_party_audit.features.third_party.schemas.services import (
    AdvertisingService,
    AnalyticsService,
    CdnService,
    FrameworkService,
    ImpactProfile,
    KnownService,
    SocialService,
    TrackingService,
    UtilityService,
    VulnerabilitySignature,
)


def matches_any(url: Optional[str], patterns: Iterable[str]) -> bool:
    if not url:
        return False
    return any(re.search(pattern, url, re.IGNORECASE) for pattern in patterns)


class ServiceCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    services: Tuple[KnownService, ...]
    vulnerabilities: Tuple[VulnerabilitySignature, ...] = ()
    impact_profiles: Tuple[ImpactProfile, ...] = ()
    slow_patterns: Tuple[str, ...] = ()
    consent_platforms: Tuple[Tuple[str, str], ...] = ()
    inline_signatures: Tuple[Tuple[str, str], ...] = ()

    def match(self, url: Optional[str]) -> Optional[KnownService]:
        """First known service whose patterns match the URL."""
        for service in self.services:
            if matches_any(url, service.patterns):
                return service
        return None

    def find_by_name(self, name: str) -> Optional[KnownService]:
        needle = (name or "").lower()
        if not needle:
            return None
        for service in self.services:
            if service.name.lower() == needle:
                return service
        for service in self.services:
            if needle in service.name.lower():
                return service
        return None

    def in_category(self, category: str) -> List[KnownService]:
        return [service for service in self.services if service.category == category]

    def impact_profile(self, url: Optional[str]) -> Optional[ImpactProfile]:
        for profile in self.impact_profiles:
            if matches_any(url, profile.patterns):
                return profile
        return None

    def vulnerabilities_for(self, url: Optional[str]) -> List[VulnerabilitySignature]:
        return [sig for sig in self.vulnerabilities if matches_any(url, (sig.pattern,))]

    def is_slow(self, url: Optional[str]) -> bool:
        return matches_any(url, self.slow_patterns)

    def consent_platform(self, url: Optional[str]) -> Optional[str]:
        for name, pattern in self.consent_platforms:
            if matches_any(url, (pattern,)):
                return name
        return None

    def inline_matches(self, source: str) -> List[str]:
        """Service names whose inline signature appears in a script body."""
        return [name for name, pattern in self.inline_signatures if re.search(pattern, source or "")]

    def describe(self) -> Dict[str, int]:
        return {
            "services": len(self.services),
            "vulnerabilities": len(self.vulnerabilities),
            "impactProfiles": len(self.impact_profiles),
        }


DEFAULT_CATALOG = ServiceCatalog(
    services=(
        # Frameworks and libraries
        FrameworkService(
            name="React",
            patterns=(r"react\.js", r"react\.min\.js", r"react\.development\.js", r"react\.production\.min\.js", r"/react@"),
            dependencies=("react-dom",),
            conflicts=("angular", "vue"),
            current_version="18.x",
            supported_versions=("16.x", "17.x", "18.x"),
            deprecated_versions=("15.x", "14.x"),
        ),
        FrameworkService(
            name="React DOM",
            patterns=(r"react-dom",),
            current_version="18.x",
            supported_versions=("16.x", "17.x", "18.x"),
            deprecated_versions=("15.x", "14.x"),
        ),
        FrameworkService(
            name="Vue.js",
            patterns=(r"vue\.js", r"vue\.min\.js", r"vue\.runtime", r"/vue@"),
            conflicts=("react", "angular"),
            current_version="3.x",
            supported_versions=("2.x", "3.x"),
            deprecated_versions=("1.x",),
        ),
        FrameworkService(
            name="Angular",
            patterns=(r"angular\.js", r"angular\.min\.js", r"angular\.core"),
            dependencies=("zone.js", "rxjs"),
            conflicts=("react", "vue"),
            current_version="15.x",
            supported_versions=("12.x", "13.x", "14.x", "15.x"),
            deprecated_versions=("1.x", "9.x", "10.x", "11.x"),
        ),
        FrameworkService(
            name="Bootstrap",
            patterns=(r"bootstrap(\.bundle)?(\.min)?\.js",),
            dependencies=("jquery", "popper"),
            current_version="5.x",
            supported_versions=("4.x", "5.x"),
            deprecated_versions=("2.x", "3.x"),
        ),
        FrameworkService(
            name="jQuery",
            patterns=(r"jquery\.js", r"jquery\.min\.js", r"jquery-\d"),
            current_version="3.x",
            supported_versions=("3.x",),
            deprecated_versions=("1.x", "2.x"),
        ),
        # Analytics
        AnalyticsService(
            name="Google Analytics",
            patterns=(r"google-analytics\.com", r"googletagmanager\.com", r"gtag"),
            confidence=0.95,
            critical=True,
            data_flow=("user_behavior", "page_views", "conversions"),
        ),
        AnalyticsService(
            name="Adobe Analytics",
            patterns=(r"omniture\.com", r"2o7\.net", r"adobe\.com/.*analytics"),
        ),
        AnalyticsService(
            name="Hotjar",
            patterns=(r"hotjar\.com",),
            impact="low",
            privacy="high",
            load_order="deferred",
            data_flow=("session_recordings", "heatmaps"),
        ),
        AnalyticsService(
            name="Mixpanel",
            patterns=(r"mixpanel\.com",),
            impact="low",
        ),
        AnalyticsService(
            name="Segment",
            patterns=(r"segment\.(io|com)", r"cdn\.segment"),
            confidence=0.85,
        ),
        # Advertising
        AdvertisingService(
            name="Google Ads",
            patterns=(r"googleadservices\.com", r"googlesyndication\.com", r"doubleclick\.net"),
            confidence=0.95,
            privacy="low",
        ),
        AdvertisingService(
            name="Facebook Pixel",
            patterns=(r"facebook\.com/tr", r"connect\.facebook\.net.*fbevents"),
            privacy="low",
            data_flow=("conversion_events", "custom_events"),
        ),
        AdvertisingService(
            name="Amazon Advertising",
            patterns=(r"amazon-adsystem\.com",),
            confidence=0.85,
        ),
        AdvertisingService(
            name="Twitter Ads",
            patterns=(r"ads-twitter\.com", r"analytics\.twitter\.com"),
            confidence=0.85,
            impact="low",
        ),
        # Social
        SocialService(
            name="Facebook SDK",
            patterns=(r"connect\.facebook\.net", r"graph\.facebook\.com"),
            privacy="low",
        ),
        SocialService(
            name="Twitter Widget",
            patterns=(r"platform\.twitter\.com", r"syndication\.twitter\.com"),
            confidence=0.85,
            impact="low",
        ),
        SocialService(
            name="YouTube Embed",
            patterns=(r"youtube\.com/embed", r"youtu\.be", r"ytimg\.com"),
            impact="high",
            alternatives=("youtube-nocookie.com",),
        ),
        SocialService(
            name="LinkedIn Widget",
            patterns=(r"platform\.linkedin\.com", r"snap\.licdn\.com"),
            confidence=0.85,
            impact="low",
        ),
        # CDN
        CdnService(
            name="Cloudflare",
            patterns=(r"cdnjs\.cloudflare\.com", r"cloudflare\.com"),
            confidence=0.95,
            impact="positive",
            privacy="high",
            fallbacks=("jsdelivr", "unpkg"),
        ),
        CdnService(
            name="jsDelivr",
            patterns=(r"jsdelivr\.net",),
            confidence=0.95,
            impact="positive",
            privacy="high",
            fallbacks=("cdnjs", "unpkg"),
        ),
        CdnService(
            name="unpkg",
            patterns=(r"unpkg\.com",),
            impact="positive",
            privacy="high",
            fallbacks=("jsdelivr", "cdnjs"),
        ),
        CdnService(
            name="Amazon CloudFront",
            patterns=(r"cloudfront\.net",),
            impact="positive",
            privacy="high",
        ),
        CdnService(
            name="Google CDN",
            patterns=(r"googleapis\.com", r"gstatic\.com"),
            impact="positive",
        ),
        # Utilities
        UtilityService(
            name="reCAPTCHA",
            patterns=(r"recaptcha\.net", r"google\.com/recaptcha"),
            confidence=0.95,
            impact="low",
        ),
        UtilityService(
            name="Stripe",
            patterns=(r"js\.stripe\.com", r"api\.stripe\.com"),
            confidence=0.95,
            impact="low",
            privacy="high",
        ),
        UtilityService(
            name="PayPal",
            patterns=(r"paypal\.com/sdk", r"paypalobjects\.com"),
            impact="low",
        ),
        # Tracking
        TrackingService(
            name="Crazy Egg",
            patterns=(r"crazyegg\.com",),
            impact="low",
        ),
        TrackingService(
            name="FullStory",
            patterns=(r"fullstory\.com",),
            impact="high",
            privacy="low",
            data_flow=("session_recordings",),
        ),
        TrackingService(
            name="LogRocket",
            patterns=(r"logrocket\.com", r"lr-ingest"),
            confidence=0.85,
            privacy="low",
            data_flow=("session_recordings",),
        ),
    ),
    vulnerabilities=(
        VulnerabilitySignature(
            name="jQuery < 3.0.0",
            pattern=r"jquery-[12]\.",
            severity="high",
            cve=("CVE-2020-11022", "CVE-2020-11023"),
            description="Cross-site scripting vulnerabilities",
        ),
        VulnerabilitySignature(
            name="lodash < 4.17.19",
            pattern=r"lodash\.js|lodash\.min\.js",
            severity="high",
            cve=("CVE-2020-8203",),
            description="Prototype pollution vulnerability",
        ),
        VulnerabilitySignature(
            name="moment.js",
            pattern=r"moment\.js|moment\.min\.js",
            severity="medium",
            description="Legacy library with performance issues",
        ),
    ),
    impact_profiles=(
        ImpactProfile(
            name="Large Analytics Bundles",
            patterns=(r"google-analytics\.com.*gtag\.js", r"googletagmanager\.com"),
            avg_size=45_000,
            load_time=800,
            render_blocking=True,
            impact="high",
        ),
        ImpactProfile(
            name="Video Embed Services",
            patterns=(r"youtube\.com/embed", r"vimeo\.com/video"),
            avg_size=150_000,
            load_time=1200,
            impact="high",
        ),
        ImpactProfile(
            name="Heavy Widget Scripts",
            patterns=(r"facebook\.com/plugins", r"platform\.twitter\.com"),
            avg_size=80_000,
            load_time=900,
            render_blocking=True,
            impact="high",
        ),
        ImpactProfile(
            name="Font Services",
            patterns=(r"fonts\.googleapis\.com", r"typekit\.net"),
            avg_size=15_000,
            load_time=600,
            render_blocking=True,
            impact="medium",
        ),
        ImpactProfile(
            name="CDN Resources",
            patterns=(r"cdn\.", r"cloudflare\.com", r"amazonaws\.com", r"jsdelivr\.net", r"unpkg\.com"),
            avg_size=25_000,
            load_time=400,
            impact="medium",
        ),
        ImpactProfile(
            name="Analytics Pixels",
            patterns=(r"facebook\.com/tr", r"doubleclick\.net"),
            avg_size=5_000,
            load_time=300,
            impact="medium",
        ),
        ImpactProfile(
            name="Image CDNs",
            patterns=(r"images\.", r"static\."),
            avg_size=10_000,
            load_time=200,
            impact="low",
        ),
        ImpactProfile(
            name="Small Utility Scripts",
            patterns=(r"recaptcha\.net", r"stripe\.com.*v3"),
            avg_size=8_000,
            load_time=250,
            impact="low",
        ),
    ),
    slow_patterns=(r"ads", r"tracking", r"analytics.*google", r"google.*analytics", r"facebook.*pixel", r"doubleclick"),
    consent_platforms=(
        ("OneTrust", r"cdn\.cookielaw\.org|onetrust\.com"),
        ("Cookiebot", r"consent\.cookiebot\.com"),
        ("CookieYes", r"cookieyes\.com"),
        ("Osano", r"osano\.com"),
        ("TrustArc", r"trustarc\.com|truste\.com"),
    ),
    inline_signatures=(
        ("Google Analytics", r"gtag\s*\(|ga\s*\(\s*['\"]create|GoogleAnalyticsObject"),
        ("Facebook Pixel", r"fbq\s*\(\s*['\"](init|track)"),
        ("Hotjar", r"hj\s*\(|_hjSettings"),
        ("Mixpanel", r"mixpanel\.(init|track)"),
        ("Segment", r"analytics\.load\s*\("),
    ),
)

