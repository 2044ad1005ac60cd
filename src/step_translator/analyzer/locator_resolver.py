"""Locator resolver - pick one selector from a step's redundant element hints."""

import json
import logging
import re
from functools import lru_cache
from typing import Callable

from ..models import NOT_FOUND, ElementDescriptor, Locator, LocatorKind
from .html_parser import DOMElement, HTMLParser

logger = logging.getLogger(__name__)

Extractor = Callable[[ElementDescriptor], Locator | None]

_ID_XPATH = re.compile(r'^//\*\[@id="([^"]+)"\]')
_TEXT_PREDICATE = re.compile(r"""text\(\)[^\]]*?=\s*(["'])(.+?)\1""", re.IGNORECASE)
# Trailing literal argument of a call, e.g. , " btn primary ")
_CALL_LITERAL = re.compile(r""",\s*(["'])([^"']*)\1\s*\)""")


@lru_cache(maxsize=256)
def _snippet_root(html: str) -> DOMElement | None:
    try:
        return HTMLParser(html).root()
    except Exception as e:  # unparsable markup is no evidence
        logger.debug("Ignoring unparsable element snippet: %s", e)
        return None


def _root(descriptor: ElementDescriptor) -> DOMElement | None:
    if not descriptor.target_outer_html:
        return None
    return _snippet_root(descriptor.target_outer_html)


def from_html_id(descriptor: ElementDescriptor) -> Locator | None:
    """id attribute of the recorded element."""
    element = _root(descriptor)
    if element and element.id:
        return Locator(LocatorKind.ID, f"#{element.id}")
    return None


def from_html_testid(descriptor: ElementDescriptor) -> Locator | None:
    """data-testid attribute of the recorded element."""
    element = _root(descriptor)
    if element and element.data_testid:
        return Locator(LocatorKind.TEST_ID, f'[data-testid="{element.data_testid}"]')
    return None


def from_html_name(descriptor: ElementDescriptor) -> Locator | None:
    """name attribute of the recorded element."""
    element = _root(descriptor)
    if element and element.name:
        return Locator(LocatorKind.NAME, f'[name="{element.name}"]')
    return None


def from_role_hint(descriptor: ElementDescriptor) -> Locator | None:
    """Id predicate or text equality from the role/id XPath."""
    ro = descriptor.multi_locator.ro
    if not ro:
        return None

    if match := _ID_XPATH.match(ro):
        return Locator(LocatorKind.ID, f"#{match.group(1)}")

    if "text()" in ro.lower() and (match := _TEXT_PREDICATE.search(ro)):
        return Locator(LocatorKind.TEXT, match.group(2))

    return None


def from_content_hint(descriptor: ElementDescriptor) -> Locator | None:
    """First text entry of the JSON content hint."""
    co = descriptor.multi_locator.co
    if not co:
        return None

    try:
        content = json.loads(co)
    except ValueError:
        logger.debug("Malformed content hint, skipping: %.60s", co)
        return None

    if isinstance(content, list) and content and isinstance(content[0], dict):
        text = content[0].get("text")
        if isinstance(text, str) and text:
            return Locator(LocatorKind.TEXT, text)
    return None


def from_class_hint(descriptor: ElementDescriptor) -> Locator | None:
    """Class tokens of a class-containment XPath, joined as a CSS selector."""
    cl = descriptor.multi_locator.cl
    if not cl or "contains(" not in cl:
        return None

    for match in _CALL_LITERAL.finditer(cl):
        tokens = match.group(2).split()
        if tokens:
            return Locator(LocatorKind.CLASS, "." + ".".join(tokens))
    return None


def from_attribute_xpath(descriptor: ElementDescriptor) -> Locator | None:
    at = (descriptor.multi_locator.at or "").strip()
    return Locator(LocatorKind.XPATH, at) if at else None


def from_absolute_xpath(descriptor: ElementDescriptor) -> Locator | None:
    """Breaks on any DOM reshuffle."""
    ab = (descriptor.multi_locator.ab or "").strip()
    return Locator(LocatorKind.XPATH, ab) if ab else None


def from_role_xpath(descriptor: ElementDescriptor) -> Locator | None:
    """The role XPath as recorded, when it carried no id or text predicate."""
    ro = (descriptor.multi_locator.ro or "").strip()
    return Locator(LocatorKind.XPATH, ro) if ro else None


# Most stable selector first
EXTRACTORS: tuple[Extractor, ...] = (
    from_html_id,
    from_html_testid,
    from_html_name,
    from_role_hint,
    from_content_hint,
    from_class_hint,
    from_attribute_xpath,
    from_absolute_xpath,
    from_role_xpath,
)


def resolve(
    descriptor: ElementDescriptor | None,
    extractors: tuple[Extractor, ...] = EXTRACTORS,
) -> Locator:
    """
    Resolve the best locator for an element.

    Never raises: with no usable evidence the result is NOT_FOUND, which the
    synthesizer renders as a manual-fixup placeholder.
    """
    if descriptor is None or descriptor.is_empty:
        return NOT_FOUND

    for extract in extractors:
        if locator := extract(descriptor):
            return locator

    return NOT_FOUND
