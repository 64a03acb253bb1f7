"""
Read-only access to notice XML through lxml.

Notices arrive as text that is sometimes truncated, carries an encoding
declaration that no longer matches, or wraps values in CDATA. Every query in
the pipeline goes through `ParsedDocument`, which parses once in recovery
mode and matches elements by local name so namespaced `DOC` signatures and
plain `N7xxxxxx` forms are handled alike.
"""

import logging
import re
from collections.abc import Iterator
from typing import Optional

from lxml import etree

# Social-insurance form roots: "N7" followed by the six-digit form number.
FORM_CODE_PATTERN = re.compile(r"N7\d{6}")


def make_parser() -> etree.XMLParser:
    """
    A fresh recovering parser. lxml parsers must not be shared across threads.
    """
    return etree.XMLParser(
        recover=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        encoding="utf-8",
    )


def local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def element_text(element: etree._Element) -> str:
    """All text inside `element`, CDATA included, with surrounding whitespace removed."""
    return "".join(element.itertext()).strip()


def parse_fragment(text: str) -> Optional[etree._Element]:
    """
    Parse `text` and return its root element, or None when nothing usable is found.

    >>> parse_fragment("<a><b>x</b></a>").tag
    'a'
    >>> parse_fragment("no markup here") is None
    True
    """
    if not text or "<" not in text:
        return None
    parser = make_parser()
    try:
        root = etree.fromstring(text.encode("utf-8"), parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        logging.debug(f"Unparsable XML: {e}")
        return None
    errors = parser.error_log.filter_from_errors()
    if errors:
        # Recovery may have dropped text, e.g. everything after a bare "&".
        logging.debug(
            "XML parsed in recovery mode, content may be missing: "
            + "; ".join(f"line {e.line}: {e.message.strip()}" for e in errors)
        )
    if root is None or not isinstance(root.tag, str):
        return None
    return root


class ParsedDocument:
    """
    A parsed notice with the element queries the pipeline needs.

    >>> doc = ParsedDocument.parse("<N7100001><_被保険者><被保険者氏名><![CDATA[山田　太郎]]></被保険者氏名></_被保険者></N7100001>")
    >>> doc.root_tag
    'N7100001'
    >>> doc.first_text("被保険者氏名")
    '山田\\u3000太郎'
    """

    def __init__(self, root: Optional[etree._Element]):
        self.root = root

    @classmethod
    def parse(cls, text: str) -> "ParsedDocument":
        return cls(parse_fragment(text))

    @property
    def is_empty(self) -> bool:
        return self.root is None

    @property
    def root_tag(self) -> Optional[str]:
        if self.root is None:
            return None
        return local_name(self.root)

    @property
    def is_social_insurance_form(self) -> bool:
        tag = self.root_tag
        return tag is not None and FORM_CODE_PATTERN.fullmatch(tag) is not None

    def iter_elements(
        self, name: str, within: Optional[etree._Element] = None
    ) -> Iterator[etree._Element]:
        """Elements named `name` in document order, the search root included."""
        start = self.root if within is None else within
        if start is None:
            return
        for element in start.iter(etree.Element):
            if local_name(element) == name:
                yield element

    def has_element(self, name: str) -> bool:
        return next(self.iter_elements(name), None) is not None

    def first_text(
        self, *names: str, within: Optional[etree._Element] = None
    ) -> Optional[str]:
        """
        Text of the first element found for the first name that exists.

        Names are tried in order, so earlier spellings win over later ones.
        """
        for name in names:
            element = next(self.iter_elements(name, within), None)
            if element is not None:
                return element_text(element)
        return None

    def first_matching_text(
        self, pattern: re.Pattern, within: Optional[etree._Element] = None
    ) -> Optional[str]:
        """Text of the first element whose local name fully matches `pattern`."""
        start = self.root if within is None else within
        if start is None:
            return None
        for element in start.iter(etree.Element):
            if pattern.fullmatch(local_name(element)):
                return element_text(element)
        return None

    def attribute_values(self, element_name: str, attribute: str) -> list[str]:
        return [
            value
            for element in self.iter_elements(element_name)
            if (value := element.get(attribute)) is not None
        ]

    def stylesheet_href(self) -> Optional[str]:
        """`href` of an `<?xml-stylesheet?>` instruction before the root element."""
        if self.root is None:
            return None
        for node in self.root.itersiblings(preceding=True):
            if (
                isinstance(node, etree._ProcessingInstruction)
                and node.target == "xml-stylesheet"
            ):
                href = node.get("href")
                if href:
                    return href
        return None
