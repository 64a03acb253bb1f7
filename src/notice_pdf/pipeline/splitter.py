"""
Per-person splitting of multi-person social-insurance notices.
"""

from lxml import etree

from notice_pdf.parsing.document import (
    FORM_CODE_PATTERN,
    ParsedDocument,
    local_name,
    parse_fragment,
)
from notice_pdf.pipeline.extractor import SUBJECT_BLOCK_TAG


def find_subject_blocks(xml_text: str) -> list[str]:
    """
    Every `_被保険者` block of the document, serialized, in document order.

    >>> find_subject_blocks("<N7100001><_被保険者><a>1</a></_被保険者><_被保険者/></N7100001>")
    ['<_被保険者><a>1</a></_被保険者>', '<_被保険者/>']
    """
    doc = ParsedDocument.parse(xml_text)
    return [
        etree.tostring(block, encoding="unicode", with_tail=False)
        for block in doc.iter_elements(SUBJECT_BLOCK_TAG)
    ]


def split_by_subject(xml_text: str, subject_block: str) -> str:
    """
    Return the document with only `subject_block` as its person block.

    All `_被保険者` blocks are removed and `subject_block` becomes the last
    child of the form's root element. Instructions before the root, such as
    `<?xml-stylesheet?>`, are kept. When the root is not a social-insurance
    form or the block does not parse, `xml_text` is returned unchanged.

    :param xml_text: the full multi-person notice
    :param subject_block: one block as returned by `find_subject_blocks`
    """
    doc = ParsedDocument.parse(xml_text)
    root = doc.root
    if root is None or not FORM_CODE_PATTERN.fullmatch(local_name(root)):
        return xml_text

    block = parse_fragment(subject_block)
    if block is None or local_name(block) != SUBJECT_BLOCK_TAG:
        return xml_text

    for existing in list(doc.iter_elements(SUBJECT_BLOCK_TAG)):
        _remove_keeping_tail(existing)

    block.tail = "\n"
    root.append(block)
    return etree.tostring(root.getroottree(), encoding="unicode")


def _remove_keeping_tail(element: etree._Element) -> None:
    """Remove `element` but keep its tail text attached to the previous node."""
    parent = element.getparent()
    tail = element.tail
    if tail and tail.strip():
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + tail
        else:
            parent.text = (parent.text or "") + tail
    parent.remove(element)
