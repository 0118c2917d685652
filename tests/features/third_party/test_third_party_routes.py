from unittest.mock import patch

from selenium.common.exceptions import WebDriverException

from third_party_audit.features.third_party.routes.third_party import get_analyzer
from third_party_audit.features.third_party.schemas.options import AnalyzerOptions
from third_party_audit.features.third_party.services.catalog import DEFAULT_CATALOG
from third_party_audit.features.third_party.services.detectors.service_detector import ServiceDetector
from third_party_audit.features.third_party.services.document import HtmlDocument
from third_party_audit.features.third_party.services.orchestrator import ThirdPartyAnalyzer
from third_party_audit.features.third_party.services.page_loader import PageLoader
from third_party_audit.platform.exceptions import PageLoadError

ANALYZE_URL = "/api/v1/third-party/analyze"


class TestAnalyzeEndpoint:
    def test_analyze_html(self, client, pages):
        response = client.post(ANALYZE_URL, json={"html": pages.mixed, "url": pages.url})

        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "success"
        assert payload["message"] == "Third-party analysis completed"
        data = payload["data"]
        assert data["success"] is True
        assert data["combined"]["summary"]["estimatedLoadTime"] == 3000
        assert "jQuery" in [s["name"] for s in data["combined"]["services"]["detected"]]

    def test_requires_html_or_url(self, client):
        response = client.post(ANALYZE_URL, json={"context": {"industry": "retail"}})

        assert response.status_code == 422
        payload = response.json()
        assert payload["status"] == "error"
        assert payload["message"] == "Validation failed"

    def test_blank_html_is_rejected_by_analyzer(self, client):
        response = client.post(ANALYZE_URL, json={"html": "   "})

        assert response.status_code == 422
        data = response.json()["data"]
        assert data["success"] is False
        assert data["state"]["errors"][0]["phase"] == "input"

    def test_analyze_url_loads_page(self, client, pages):
        document = HtmlDocument(pages.blocking, base_url=pages.url)

        with patch.object(PageLoader, "load_document", return_value=document) as load_document:
            response = client.post(ANALYZE_URL, json={"url": pages.url})

        assert response.status_code == 200
        load_document.assert_called_once_with(pages.url)
        data = response.json()["data"]
        assert data["combined"]["summary"]["blockingResources"] == 5

    def test_page_load_failure(self, client):
        with patch.object(PageLoader, "load_document", side_effect=PageLoadError("Timed out loading page")):
            response = client.post(ANALYZE_URL, json={"url": "https://unreachable.example.com/"})

        assert response.status_code == 502
        payload = response.json()
        assert payload["status"] == "error"
        assert payload["message"] == "Timed out loading page"

    def test_browser_start_failure_is_bad_gateway(self, client):
        with patch.object(PageLoader, "build_driver", side_effect=WebDriverException("chrome not found")):
            response = client.post(ANALYZE_URL, json={"url": "https://example.com/"})

        assert response.status_code == 502
        assert "chrome not found" in response.json()["message"]

    def test_uses_injected_analyzer(self, client, test_app, pages):
        options = AnalyzerOptions(enable_dependency_mapping=False)
        test_app.dependency_overrides[get_analyzer] = lambda: ThirdPartyAnalyzer(options)

        response = client.post(ANALYZE_URL, json={"html": pages.mixed})

        assert response.status_code == 200
        assert "dependencies" not in response.json()["data"]["detectors"]


class TestLegacyAndMetadata:
    def test_legacy_endpoint(self, client, pages):
        response = client.post(f"{ANALYZE_URL}/legacy", json={"html": pages.mixed, "url": pages.url})

        assert response.status_code == 200
        data = response.json()["data"]
        assert set(data) >= {
            "scripts",
            "tracking",
            "performanceImpact",
            "privacyImplications",
            "cdnUsage",
            "summary",
            "recommendations",
            "thirdPartyScore",
        }
        assert isinstance(data["thirdPartyScore"], int)

    def test_legacy_endpoint_keeps_injected_components(self, client, test_app, pages):
        analyzer = ThirdPartyAnalyzer(detectors={"services": ServiceDetector(DEFAULT_CATALOG)}, heuristics={})
        test_app.dependency_overrides[get_analyzer] = lambda: analyzer

        response = client.post(f"{ANALYZE_URL}/legacy", json={"html": pages.mixed, "url": pages.url})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["scripts"]["total"] > 0
        assert data["performanceImpact"]["score"] is None
        assert data["performanceImpact"]["estimatedLoadTime"] == 0
        assert data["thirdPartyScore"] == 0

    def test_metadata_endpoint(self, client):
        response = client.get("/api/v1/third-party/metadata")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "ThirdPartyAnalyzer"
        assert data["heuristics"] == ["performance", "security", "strategy"]
