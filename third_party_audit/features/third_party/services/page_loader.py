import time

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service

from third_party_audit.features.third_party.services.document import (
    HtmlDocument,
    document_from_driver,
)
from third_party_audit.platform.config import settings
from third_party_audit.platform.exceptions import PageLoadError
from third_party_audit.platform.logger import get_logger

logger = get_logger(__name__)


class PageLoader:
    @staticmethod
    def build_driver() -> webdriver.Chrome:
        chrome_options = Options()
        chrome_options.add_argument('--headless')
        chrome_options.add_argument('--no-sandbox')
        chrome_options.add_argument('--disable-dev-shm-usage')

        if settings.CHROMEDRIVER_PATH:
            driver_service = Service(executable_path=settings.CHROMEDRIVER_PATH)
            driver = webdriver.Chrome(service=driver_service, options=chrome_options)
        else:
            driver = webdriver.Chrome(options=chrome_options)

        return driver

    @staticmethod
    def load_document(url: str, timeout: int = None) -> HtmlDocument:
        """
        Load a page in headless Chrome and snapshot its rendered DOM.
        The driver is always closed before returning.
        """
        timeout = timeout or settings.PAGE_LOAD_TIMEOUT
        driver = None
        try:
            driver = PageLoader.build_driver()
            driver.set_page_load_timeout(timeout)
            start_time = time.time()
            driver.get(url)
            logger.info(f"Loaded {url} in {time.time() - start_time:.2f}s")
            return document_from_driver(driver)
        except TimeoutException as e:
            raise PageLoadError(f"Timeout loading page: {e.msg or url}") from e
        except WebDriverException as e:
            raise PageLoadError(f"WebDriver error: {e.msg or url}") from e
        finally:
            if driver is not None:
                try:
                    driver.quit()
                except WebDriverException as e:
                    logger.warning(f"Failed to close driver for {url}: {e.msg}")
