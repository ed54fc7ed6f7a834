# src/scrapers/extractor.py

"""Evaluate a selector rule against a fetched HTML document."""

import logging
from dataclasses import dataclass

import soupsieve
from bs4 import BeautifulSoup, Tag

from src.models.errors import ExtractionError, ExtractionFailureKind
from src.models.tracked_item import ExtractionRule

logger = logging.getLogger("pricy.extractor")


@dataclass
class ExtractedValue:
    """Raw (unsanitized) price text and the page title."""

    title: str
    raw: str


def parse_document(html: str) -> BeautifulSoup:
    """Build a document tree from page HTML."""
    return BeautifulSoup(html, "lxml")


def _page_title(soup: BeautifulSoup) -> str:
    """Text of the first ``<title>`` element, or ``""`` when absent."""
    title_el = soup.find("title")
    if not isinstance(title_el, Tag):
        return ""
    # Single line: the title is reused as a mail subject
    return " ".join(title_el.get_text(" ").split())


def evaluate(
    document: str | BeautifulSoup,
    rule: ExtractionRule,
) -> ExtractedValue:
    """Locate the price element for *rule* and return its raw value.

    When ``rule.attribute`` is set the attribute value is returned,
    otherwise the element's text content.  A missing title is not an
    error and yields an empty title.

    Raises:
        ExtractionError: The selector does not compile, matches nothing,
            or the requested attribute is absent on the matched element.
    """
    soup = (
        document
        if isinstance(document, BeautifulSoup)
        else parse_document(document)
    )

    try:
        compiled = soupsieve.compile(rule.selector)
    except (soupsieve.SelectorSyntaxError, TypeError, ValueError) as exc:
        raise ExtractionError(
            ExtractionFailureKind.SELECTOR_INVALID,
            rule.selector,
            rule.attribute,
            cause=exc,
        ) from exc

    element = compiled.select_one(soup)
    if element is None:
        raise ExtractionError(
            ExtractionFailureKind.ELEMENT_NOT_FOUND,
            rule.selector,
            rule.attribute,
        )

    if rule.attribute:
        value = element.get(rule.attribute)
        if value is None:
            raise ExtractionError(
                ExtractionFailureKind.ATTRIBUTE_NOT_FOUND,
                rule.selector,
                rule.attribute,
            )
        # Multi-valued attributes (class, rel) come back as lists
        raw = " ".join(value) if isinstance(value, list) else str(value)
    else:
        raw = element.get_text(strip=True)

    title = _page_title(soup)
    logger.debug(
        "Selector '%s' matched <%s>, raw=%r, title=%r",
        rule.selector,
        element.name,
        raw,
        title,
    )
    return ExtractedValue(title=title, raw=raw)
