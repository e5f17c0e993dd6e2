"""HTML extraction and reinsertion utilities, plus file handlers for the CLI."""

from __future__ import annotations

import json
import logging
import pathlib
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from .errors import UnsupportedFileTypeError, ValidationError

logger = logging.getLogger(__name__)

LOCALIZABLE_ATTRIBUTES: Dict[str, Tuple[str, ...]] = {
    "meta": ("content",),
    "img": ("alt",),
    "input": ("placeholder",),
    "a": ("title",),
}

UNLOCALIZABLE_TAGS = frozenset({"script", "style"})

ROOT_NAMESPACES = ("head", "body")

Node = Union[Tag, NavigableString]


def _is_text(node: PageElement) -> bool:
    # Comments, doctypes and CDATA are PreformattedString subclasses.
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def meaningful_children(node: Tag) -> List[Node]:
    """Elements and non-blank text nodes, in document order."""

    return [
        child
        for child in node.children
        if isinstance(child, Tag) or (_is_text(child) and child.strip() != "")
    ]


def _path(root: str, indices: List[int], attribute: str | None = None) -> str:
    base = "/".join([root, *(str(index) for index in indices)])
    return f"{base}#{attribute}" if attribute else base


def _extract_node(
    node: Node,
    root: str,
    indices: List[int],
) -> List[Tuple[str, str]]:
    """Return the (address, value) pairs found at and below ``node``."""

    if _is_text(node):
        text = node.strip()
        return [(_path(root, indices), text)] if text else []
    if not isinstance(node, Tag):
        return []

    found: List[Tuple[str, str]] = []
    tag_name = node.name.lower()
    for attribute in LOCALIZABLE_ATTRIBUTES.get(tag_name, ()):
        value = node.get(attribute)
        if isinstance(value, str) and value.strip():
            found.append((_path(root, indices, attribute), value))

    if tag_name in UNLOCALIZABLE_TAGS:
        return found

    for index, child in enumerate(meaningful_children(node)):
        found.extend(_extract_node(child, root, [*indices, index]))
    return found


def _has_blocked_ancestor(node: Tag) -> bool:
    parent = node.parent
    while parent is not None and not isinstance(parent, BeautifulSoup):
        if parent.name and parent.name.lower() in UNLOCALIZABLE_TAGS:
            return True
        parent = parent.parent
    return False


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def extract_from_soup(soup: BeautifulSoup) -> Dict[str, str]:
    """Collect every localizable leaf of ``head`` and ``body`` by address."""

    content: Dict[str, str] = {}
    for root in ROOT_NAMESPACES:
        element = soup.find(root)
        if not isinstance(element, Tag) or _has_blocked_ancestor(element):
            continue
        for index, child in enumerate(meaningful_children(element)):
            content.update(_extract_node(child, root, [index]))
    logger.debug("Extracted %d localizable entries from HTML", len(content))
    return content


def extract_content(html: str) -> Dict[str, str]:
    """Extract a flat address -> text mapping from an HTML document."""

    if html is None:
        raise ValidationError("HTML cannot be None")
    return extract_from_soup(parse_html(html))


def parse_address(address: str) -> Optional[Tuple[str, List[int], Optional[str]]]:
    """Split an address into root, indices and attribute; None if malformed."""

    node_path, _, attribute = address.partition("#")
    root, *parts = node_path.split("/")
    if root not in ROOT_NAMESPACES:
        return None
    try:
        indices = [int(part) for part in parts]
    except ValueError:
        return None
    if any(index < 0 for index in indices):
        return None
    return root, indices, attribute or None


def resolve_address(soup: BeautifulSoup, address: str) -> Optional[Tuple[Node, Optional[str]]]:
    """Find the node an address points to, or None if it no longer exists."""

    parsed = parse_address(address)
    if parsed is None:
        return None
    root, indices, attribute = parsed

    current = soup.find(root)
    if not isinstance(current, Tag):
        return None
    for index in indices:
        if not isinstance(current, Tag):
            return None
        siblings = meaningful_children(current)
        if index >= len(siblings):
            return None
        current = siblings[index]
    return current, attribute


def reinject_into_soup(
    soup: BeautifulSoup,
    content: Dict[str, Any],
    target_locale: str,
) -> None:
    """Write translated values back into the addressed nodes in place."""

    if soup.html is not None:
        soup.html["lang"] = target_locale

    # Resolve against the untouched tree so edits cannot shift later indices.
    targets: List[Tuple[Node, Optional[str], Any]] = []
    for address, value in content.items():
        resolved = resolve_address(soup, address)
        if resolved is None:
            logger.debug("Skipping stale HTML address %s", address)
            continue
        node, attribute = resolved
        targets.append((node, attribute, value))

    for node, attribute, value in targets:
        text = "" if value is None else str(value)
        if attribute:
            if isinstance(node, Tag):
                node[attribute] = text
        elif _is_text(node):
            node.replace_with(text)


def reinject_content(html: str, content: Dict[str, Any], target_locale: str) -> str:
    """Rebuild an HTML document from translated address -> text values."""

    if target_locale is None or not str(target_locale).strip():
        raise ValidationError("Target locale is required")
    if html is None:
        raise ValidationError("HTML cannot be None")
    soup = parse_html(html)
    reinject_into_soup(soup, content, target_locale)
    return str(soup)


class BaseDocumentHandler(ABC):
    """Common base class for CLI document handlers."""

    document_type = "unknown"

    def __init__(self, source_path: pathlib.Path):
        self.source_path = source_path

    def read_text(self) -> str:
        return self.source_path.read_text(encoding="utf-8")

    @abstractmethod
    def translate(self, engine: Any, **options: Any) -> str:
        """Localize the file content and return the serialized result."""

    def save(self, destination: pathlib.Path, content: str) -> None:
        destination.write_text(content, encoding="utf-8")


class HtmlDocumentHandler(BaseDocumentHandler):
    """Localizes an HTML page."""

    document_type = "html"

    def translate(self, engine: Any, **options: Any) -> str:
        return engine.localize_html(self.read_text(), **options)


class JsonDocumentHandler(BaseDocumentHandler):
    """Localizes the string values of a JSON object."""

    document_type = "json"

    def translate(self, engine: Any, **options: Any) -> str:
        try:
            data = json.loads(self.read_text())
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Invalid JSON document: {exc}") from exc
        result = engine.localize_object(data, **options)
        return json.dumps(result, ensure_ascii=False, indent=2) + "\n"


def detect_handler(path: pathlib.Path) -> BaseDocumentHandler:
    """Select an appropriate handler for the provided file."""

    suffix = path.suffix.lower()
    if suffix in {".html", ".htm"}:
        return HtmlDocumentHandler(path)
    if suffix == ".json":
        return JsonDocumentHandler(path)
    raise UnsupportedFileTypeError(
        "This file type isn't supported. Please use .html, .htm or .json."
    )
