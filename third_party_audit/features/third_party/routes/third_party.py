import asyncio

from fastapi import APIRouter, Depends, status

from third_party_audit.features.third_party.schemas.analysis import AnalysisContext, AnalyzeRequest
from third_party_audit.features.third_party.schemas.options import AnalyzerOptions
from third_party_audit.features.third_party.services.orchestrator import ThirdPartyAnalyzer
from third_party_audit.features.third_party.services.page_loader import PageLoader
from third_party_audit.platform.config import settings
from third_party_audit.platform.logger import get_logger
from third_party_audit.platform.response import analysis_response, api_response

logger = get_logger(__name__)

router = APIRouter(prefix="/third-party", tags=["third-party"])


def get_analyzer() -> ThirdPartyAnalyzer:
    return ThirdPartyAnalyzer(AnalyzerOptions.from_settings(settings))


async def _load_document(request: AnalyzeRequest):
    page_url = str(request.url) if request.url else None
    if request.html:
        # Raw HTML is validated and parsed by the analyzer against the context url
        return request.html
    logger.info(f"Loading {page_url} in headless Chrome")
    # Selenium is blocking; keep it off the event loop
    return await asyncio.to_thread(PageLoader.load_document, page_url)


def _context(request: AnalyzeRequest) -> AnalysisContext:
    context = request.context or AnalysisContext()
    if request.url and not context.url:
        context = context.model_copy(update={"url": str(request.url)})
    return context


@router.post(
    "/analyze",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Analyze third-party resources",
    description="Detect third-party services on a page and map their dependencies, cost and risk",
)
async def analyze_third_party(request: AnalyzeRequest, analyzer: ThirdPartyAnalyzer = Depends(get_analyzer)):
    """
    Analyze the third-party resources of a page.

    Send either raw `html` (optionally with `url` as the page origin) or a
    `url` to load in headless Chrome. Component failures do not fail the
    request; they are listed in `state.errors`.
    """
    document = await _load_document(request)
    result = await analyzer.analyze(document, _context(request))
    return analysis_response(result)


@router.post(
    "/analyze/legacy",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Analyze third-party resources (legacy format)",
)
async def analyze_third_party_legacy(
    request: AnalyzeRequest, analyzer: ThirdPartyAnalyzer = Depends(get_analyzer)
):
    document = await _load_document(request)
    legacy_analyzer = ThirdPartyAnalyzer(
        analyzer.options.model_copy(update={"enable_legacy_view": True}),
        analyzer.catalog,
        detectors=analyzer.detectors,
        heuristics=analyzer.heuristics,
    )
    result = await legacy_analyzer.analyze(document, _context(request))
    return analysis_response(result, result.get("legacy"))


@router.get("/metadata", response_model=dict, summary="Analyzer metadata")
async def analyzer_metadata(analyzer: ThirdPartyAnalyzer = Depends(get_analyzer)):
    return api_response(
        data=analyzer.metadata(),
        message="Analyzer metadata retrieved",
        status_code=status.HTTP_200_OK,
    )
