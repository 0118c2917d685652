import pytest
from unittest.mock import MagicMock, patch
from bs4 import BeautifulSoup
from selenium.common.exceptions import TimeoutException, WebDriverException

from third_party_audit.features.third_party.services.document import (
    HtmlDocument,
    document_from_driver,
    ensure_document,
)
from third_party_audit.features.third_party.services.page_loader import PageLoader
from third_party_audit.platform.exceptions import InvalidDocumentError, PageLoadError


class TestHtmlDocument:
    def test_query_returns_snapshots_in_document_order(self):
        document = HtmlDocument(
            "<html><head><script src='a.js'></script></head>"
            "<body><script async src='b.js'></script></body></html>"
        )

        scripts = document.query_selector_all("script[src]")

        assert [s.get_attribute("src") for s in scripts] == ["a.js", "b.js"]
        assert scripts[0].position < scripts[1].position
        assert scripts[0].in_head is True
        assert scripts[1].in_head is False
        assert scripts[1].has_attribute("async")
        assert not scripts[0].has_attribute("async")

    def test_multi_valued_attributes_are_joined(self):
        document = HtmlDocument('<link rel="preload stylesheet" href="x.css">')

        (link,) = document.query_selector_all("link[href]")

        assert link.get_attribute("rel") == "preload stylesheet"

    def test_inline_script_text_is_kept(self):
        document = HtmlDocument("<script>gtag('js', new Date());</script><p>text</p>")

        (script,) = document.query_selector_all("script:not([src])")

        assert "gtag(" in script.text

    def test_document_from_driver_uses_rendered_source(self):
        driver = MagicMock()
        driver.page_source = "<html><body><script src='https://cdn.example.com/x.js'></script></body></html>"
        driver.current_url = "https://example.com/"

        document = document_from_driver(driver)

        assert document.base_url == "https://example.com/"
        assert len(document.query_selector_all("script[src]")) == 1


class TestEnsureDocument:
    def test_accepts_raw_html(self):
        document = ensure_document("<p>hi</p>", base_url="https://example.com")
        assert isinstance(document, HtmlDocument)
        assert document.base_url == "https://example.com"

    def test_accepts_beautifulsoup(self):
        soup = BeautifulSoup("<script src='x.js'></script>", "html.parser")
        document = ensure_document(soup)
        assert len(document.query_selector_all("script")) == 1

    def test_accepts_any_queryable_object(self):
        custom = MagicMock()
        custom.query_selector_all.return_value = []
        assert ensure_document(custom) is custom

    @pytest.mark.parametrize("candidate", [None, "", "   ", 42, object()])
    def test_rejects_unusable_input(self, candidate):
        with pytest.raises(InvalidDocumentError):
            ensure_document(candidate)


class TestPageLoader:
    @pytest.fixture
    def mock_driver(self):
        driver = MagicMock()
        driver.page_source = "<html><head><script src='https://cdn.example.com/a.js'></script></head></html>"
        driver.current_url = "https://example.com/"
        return driver

    def test_load_document_snapshots_and_quits(self, mock_driver):
        with patch.object(PageLoader, "build_driver", return_value=mock_driver):
            document = PageLoader.load_document("https://example.com", timeout=5)

        mock_driver.set_page_load_timeout.assert_called_once_with(5)
        mock_driver.get.assert_called_once_with("https://example.com")
        mock_driver.quit.assert_called_once()
        assert document.base_url == "https://example.com/"

    def test_timeout_becomes_page_load_error(self, mock_driver):
        mock_driver.get.side_effect = TimeoutException("took too long")

        with patch.object(PageLoader, "build_driver", return_value=mock_driver):
            with pytest.raises(PageLoadError):
                PageLoader.load_document("https://slow.example.com")

        mock_driver.quit.assert_called_once()

    def test_webdriver_error_becomes_page_load_error(self, mock_driver):
        mock_driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")

        with patch.object(PageLoader, "build_driver", return_value=mock_driver):
            with pytest.raises(PageLoadError) as exc_info:
                PageLoader.load_document("https://missing.example.com")

        assert "ERR_NAME_NOT_RESOLVED" in str(exc_info.value)
        mock_driver.quit.assert_called_once()

    def test_driver_start_failure_becomes_page_load_error(self):
        with patch.object(PageLoader, "build_driver", side_effect=WebDriverException("chrome not found")):
            with pytest.raises(PageLoadError) as exc_info:
                PageLoader.load_document("https://example.com")

        assert "chrome not found" in str(exc_info.value)

    def test_driver_is_quit_when_timeout_setup_fails(self, mock_driver):
        mock_driver.set_page_load_timeout.side_effect = WebDriverException("bad timeout")

        with patch.object(PageLoader, "build_driver", return_value=mock_driver):
            with pytest.raises(PageLoadError):
                PageLoader.load_document("https://example.com")

        mock_driver.get.assert_not_called()
        mock_driver.quit.assert_called_once()
