"""
Analysis Schemas

Request models for the API and the uniform envelope every detector and
heuristic invocation is wrapped in.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, HttpUrl, model_validator

from third_party_audit.features.third_party.schemas.base import CamelModel


class AnalysisContext(BaseModel):
    """Caller supplied context. Unknown keys are kept and passed through."""

    model_config = ConfigDict(extra="allow", frozen=True)

    url: Optional[str] = None
    target_keywords: List[str] = []
    industry: Optional[str] = None


class AnalysisPhaseResult(CamelModel):
    component: str
    phase: Literal["detector", "heuristic"]
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    execution_time: float = 0.0  # milliseconds

    def get(self, *path: str, default: Any = None) -> Any:
        """Walk `data` by keys, returning `default` for failures or missing keys."""
        if not self.success or self.data is None:
            return default
        value: Any = self.data
        for key in path:
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return default if value is None else value


class PhaseError(CamelModel):
    phase: Literal["input", "detector", "heuristic"]
    component: str
    error: str


class AnalyzeRequest(BaseModel):
    """Request to analyze a page's third-party resources."""
    html: Optional[str] = None
    url: Optional[HttpUrl] = None
    context: Optional[AnalysisContext] = None

    @model_validator(mode="after")
    def check_source(self):
        if not self.html and not self.url:
            raise ValueError("Either 'html' or 'url' must be provided")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com",
                "context": {"industry": "retail"},
            }
        }
