"""
Document access layer.

Detectors only ever see `DocumentElement` snapshots taken once when the
document is built, so several detectors can query the same document
concurrently without touching the parser or the browser.
"""
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ConfigDict, Field
from selenium import webdriver
from typing_extensions import Protocol, runtime_checkable

from third_party_audit.platform.exceptions import InvalidDocumentError


class DocumentElement(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    position: int = 0
    in_head: bool = False
    text: str = ""

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes


@runtime_checkable
class Document(Protocol):
    base_url: Optional[str]

    def query_selector_all(self, selector: str) -> List[DocumentElement]:
        ...


def _attribute_value(value) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return "" if value is None else str(value)


class HtmlDocument:
    """BeautifulSoup-backed document built from static or rendered HTML."""

    def __init__(self, html: str, base_url: Optional[str] = None):
        self.base_url = base_url
        self._soup = BeautifulSoup(html or "", "html.parser")
        self._snapshots: Dict[int, DocumentElement] = {}

        for position, tag in enumerate(self._soup.find_all(True)):
            self._snapshots[id(tag)] = DocumentElement(
                tag=tag.name.lower(),
                attributes={
                    key.lower(): _attribute_value(value) for key, value in tag.attrs.items()
                },
                position=position,
                in_head=tag.find_parent("head") is not None,
                text=tag.get_text() if tag.name.lower() == "script" else "",
            )

    @classmethod
    def from_soup(cls, soup: BeautifulSoup, base_url: Optional[str] = None) -> "HtmlDocument":
        return cls(str(soup), base_url=base_url)

    def query_selector_all(self, selector: str) -> List[DocumentElement]:
        return [
            self._snapshots[id(tag)]
            for tag in self._soup.select(selector)
            if isinstance(tag, Tag) and id(tag) in self._snapshots
        ]

    def __len__(self) -> int:
        return len(self._snapshots)


def document_from_driver(driver: webdriver.Chrome) -> HtmlDocument:
    """
    Snapshot the DOM a WebDriver has rendered.

    Reads `page_source` after scripts ran, so dynamically injected tags are
    included. The driver is not used again after this call.
    """
    return HtmlDocument(driver.page_source, base_url=driver.current_url)


def ensure_document(candidate, base_url: Optional[str] = None) -> Document:
    """Accept a document, a BeautifulSoup tree or raw HTML; reject anything else."""
    if candidate is None:
        raise InvalidDocumentError("Document is required for third-party analysis")
    if isinstance(candidate, BeautifulSoup):
        return HtmlDocument.from_soup(candidate, base_url=base_url)
    if isinstance(candidate, str):
        if not candidate.strip():
            raise InvalidDocumentError("Document HTML is empty")
        return HtmlDocument(candidate, base_url=base_url)
    if not callable(getattr(candidate, "query_selector_all", None)):
        raise InvalidDocumentError(
            f"Document of type {type(candidate).__name__} does not support query_selector_all"
        )
    return candidate
