"""
XSLT transformation and HTML to PDF rendering.

The conversion pipeline only sees the `Renderer` protocol; `XsltPdfRenderer`
is the default implementation (lxml for XSLT, PyMuPDF for layout).
"""

import io
import logging
from typing import Protocol

import pymupdf
from lxml import etree

from notice_pdf.parsing.document import make_parser
from notice_pdf.schemas import RenderError

# A4 with 10mm margins, in points.
PAGE_MARGIN = 28.35


class Renderer(Protocol):
    def transform(self, xml: str, xsl: str) -> str:
        """Apply the stylesheet `xsl` to `xml` and return HTML."""
        ...

    def render(self, html: str) -> bytes:
        """Lay out `html` and return PDF bytes."""
        ...


class XsltPdfRenderer:
    """
    Render notices with lxml's XSLT processor and PyMuPDF's HTML layout.

    Each call builds its own stylesheet and document objects, so one
    instance can serve a whole batch and several worker threads.
    """

    def __init__(self, paper: str = "a4", margin: float = PAGE_MARGIN):
        self.paper = paper
        self.margin = margin

    def transform(self, xml: str, xsl: str) -> str:
        try:
            stylesheet = etree.XSLT(etree.fromstring(xsl.encode("utf-8"), make_parser()))
            source = etree.fromstring(xml.encode("utf-8"), make_parser())
            result = stylesheet(source)
        except (etree.XSLTError, etree.XMLSyntaxError, ValueError, TypeError) as e:
            raise RenderError(f"XSLT transformation failed: {e}") from e
        html = str(result)
        if not html.strip():
            raise RenderError("XSLT transformation produced no output")
        return html

    def render(self, html: str) -> bytes:
        try:
            story = pymupdf.Story(html=html)
            buffer = io.BytesIO()
            writer = pymupdf.DocumentWriter(buffer)
            mediabox = pymupdf.paper_rect(self.paper)
            where = mediabox + (self.margin, self.margin, -self.margin, -self.margin)
            more = True
            pages = 0
            while more:
                device = writer.begin_page(mediabox)
                more, _ = story.place(where)
                story.draw(device)
                writer.end_page()
                pages += 1
            writer.close()
        except Exception as e:  # MuPDF errors do not share a base class
            raise RenderError(f"PDF generation failed: {e}") from e
        logging.debug(f"Rendered {pages} page(s)")
        return buffer.getvalue()
