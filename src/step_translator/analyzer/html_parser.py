"""HTML parser for recorded element snippets."""

from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag


@dataclass
class DOMElement:
    """Represents a DOM element with its attributes."""

    tag: str
    id: str | None = None
    classes: list[str] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def data_testid(self) -> str | None:
        """Get data-testid attribute if present."""
        return self.attributes.get("data-testid") or None

    @property
    def name(self) -> str | None:
        """Get name attribute if present."""
        return self.attributes.get("name") or None


class HTMLParser:
    """Parse a recorded outerHTML snippet."""

    def __init__(self, html: str):
        # html.parser keeps fragments like a bare <td> intact
        self.soup = BeautifulSoup(html, "html.parser")

    def root(self) -> DOMElement | None:
        """The outermost element of the snippet, i.e. the recorded target."""
        tag = self.soup.find(True)
        if tag and isinstance(tag, Tag):
            return self._tag_to_element(tag)
        return None

    @staticmethod
    def _tag_to_element(tag: Tag) -> DOMElement:
        """Convert a BeautifulSoup Tag to a DOMElement."""
        classes = tag.get("class") or []
        return DOMElement(
            tag=tag.name,
            id=str(tag.get("id") or "") or None,
            classes=list(classes),
            attributes={
                k: " ".join(v) if isinstance(v, list) else str(v)
                for k, v in tag.attrs.items()
                if k not in ("id", "class")
            },
        )
