from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Third-Party Audit"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True

    # ── Logging ─────────────────────────────────
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # ── Browser ─────────────────────────────────
    CHROMEDRIVER_PATH: Optional[str] = None
    PAGE_LOAD_TIMEOUT: int = 15

    # ── Analysis ────────────────────────────────
    COMPONENT_TIMEOUT_SECONDS: float = 30.0

    ENABLE_SERVICE_DETECTION: bool = True
    ENABLE_PERFORMANCE_ANALYSIS: bool = True
    ENABLE_PRIVACY_ANALYSIS: bool = True
    ENABLE_DEPENDENCY_MAPPING: bool = True

    ENABLE_PERFORMANCE_HEURISTICS: bool = True
    ENABLE_SECURITY_HEURISTICS: bool = True
    ENABLE_STRATEGY_HEURISTICS: bool = True

    ENABLE_LEGACY_VIEW: bool = False

    PERFORMANCE_IMPACT_THRESHOLD: float = 0.3  # 30% impact
    PRIVACY_RISK_THRESHOLD: float = 0.7  # 70% risk
    DEPENDENCY_COMPLEXITY_THRESHOLD: float = 0.6  # 60% complexity

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
