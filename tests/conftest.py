"""
Test configuration and fixtures for the Third-Party Audit API.

Provides the app/client fixtures, sample pages and a helper that turns HTML
into identified services so graph tests can start from real markup.
"""
from types import SimpleNamespace
from typing import Generator

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

from third_party_audit.features.third_party.services.catalog import DEFAULT_CATALOG
from third_party_audit.features.third_party.services.document import HtmlDocument
from third_party_audit.features.third_party.services.extractor import ResourceExtractor
from third_party_audit.features.third_party.services.identifier import ServiceIdentifier

load_dotenv()

PAGE_URL = "https://shop.example.com/"

FRAMEWORK_PAGE = """
<html><head>
<script src="https://unpkg.com/react@18.2.0/umd/react.production.min.js"></script>
<script src="https://unpkg.com/react-dom@18.2.0/umd/react-dom.production.min.js"></script>
<script src="https://cdn.jsdelivr.net/npm/vue@3.3.4/dist/vue.global.js"></script>
</head><body></body></html>
"""

BLOCKING_PAGE = """
<html><head>
<script src="https://static.example.net/one.js"></script>
<script src="https://static.example.net/two.js"></script>
<script src="https://static.example.net/three.js"></script>
<script src="https://static.example.net/four.js"></script>
<script src="https://static.example.net/five.js"></script>
</head><body><p>Hello</p></body></html>
"""

MIXED_PAGE = """
<html><head>
<script src="https://www.google-analytics.com/analytics.js"></script>
<script async src="https://connect.facebook.net/en_US/fbevents.js"></script>
<script src="https://code.jquery.com/jquery-1.12.4.min.js"></script>
<script src="https://cdn.jsdelivr.net/npm/bootstrap@5.3.0/dist/js/bootstrap.bundle.min.js"></script>
<link rel="stylesheet" href="https://fonts.googleapis.com/css?family=Roboto">
<script src="/js/app.js"></script>
</head><body>
<iframe src="https://www.youtube.com/embed/abc123"></iframe>
<script>fbq('init', '1234');</script>
</body></html>
"""


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from third_party_audit.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()


@pytest.fixture
def pages():
    return SimpleNamespace(
        url=PAGE_URL,
        frameworks=FRAMEWORK_PAGE,
        blocking=BLOCKING_PAGE,
        mixed=MIXED_PAGE,
    )


@pytest.fixture
def catalog():
    return DEFAULT_CATALOG


@pytest.fixture
def identify(catalog):
    """Return a function mapping HTML to identified services in document order."""

    def _identify(html: str, page_url: str = None, service_catalog=None):
        service_catalog = service_catalog or catalog
        document = HtmlDocument(html, base_url=page_url)
        resources = ResourceExtractor(service_catalog).extract(document, page_url)
        identifier = ServiceIdentifier(service_catalog)
        return [identifier.identify(resource) for resource in resources]

    return _identify
