# signchain/pdf.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional, Protocol, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from signchain.config import BUNDLED_FONT_PATH
from signchain.errors import PdfExportError

log = logging.getLogger("signchain.pdf")

# ------------------------------------------------------------------------------
# Geometry & typography
# ------------------------------------------------------------------------------

MARGIN = 48
BODY_SIZE = 11
TITLE_SIZE = 16
TITLE_GAP = 12
LINE_HEIGHT = BODY_SIZE * 1.35
TITLE_LINE_HEIGHT = TITLE_SIZE * 1.2

HEADING = re.compile(r"^(#{1,3})\s+")
HEADING_SIZES = {1: 14, 2: 12.5, 3: 11.5}

EMBEDDED_FONT = "SignChainSans"


@dataclass(frozen=True)
class PageGeometry:
    width: float
    height: float
    margin: float = MARGIN

    @property
    def usable_width(self) -> float:
        return self.width - 2 * self.margin


A4_GEOMETRY = PageGeometry(width=A4[0], height=A4[1])


# ------------------------------------------------------------------------------
# Document model
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    size: float


@dataclass
class Page:
    width: float
    height: float
    runs: List[TextRun] = field(default_factory=list)


@dataclass
class Document:
    title: str
    pages: List[Page] = field(default_factory=list)

    def add_page(self, geometry: PageGeometry) -> Page:
        page = Page(width=geometry.width, height=geometry.height)
        self.pages.append(page)
        return page

    @property
    def runs(self) -> List[TextRun]:
        return [run for page in self.pages for run in page.runs]


class FontMetrics(Protocol):
    name: str

    def width(self, text: str, size: float) -> float:
        ...


@dataclass(frozen=True)
class ReportlabFont:
    """Metrics for a font registered with reportlab (built-in or TTF)."""
    name: str

    def width(self, text: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, self.name, size)


def load_font(path: Optional[str] = None) -> ReportlabFont:
    """
    Register a TrueType font for the PDF. Without a path the bundled DejaVu
    Sans is used, since the built-in Type 1 fonts have no ş, ğ or ı and
    reportlab would draw them from a substitution font. A configured but
    unusable font is an error, not a silent fallback.
    """
    path = path or BUNDLED_FONT_PATH
    try:
        pdfmetrics.registerFont(TTFont(EMBEDDED_FONT, path))
    except Exception as exc:
        raise PdfExportError(f"Could not load PDF font '{path}': {exc}") from exc
    return ReportlabFont(EMBEDDED_FONT)


# ------------------------------------------------------------------------------
# Wrapping
# ------------------------------------------------------------------------------

def _split_word(word: str, metrics: FontMetrics, size: float, max_width: float) -> List[str]:
    chunks: List[str] = []
    chunk = ""
    for ch in word:
        candidate = chunk + ch
        if chunk and metrics.width(candidate, size) > max_width:
            chunks.append(chunk)
            chunk = ch
        else:
            chunk = candidate
    if chunk:
        chunks.append(chunk)
    return chunks


def wrap_line(line: str, metrics: FontMetrics, size: float, max_width: float) -> List[str]:
    """
    Greedy word wrap. Words wider than max_width are split per character so
    no returned line is wider than max_width.
    """
    out: List[str] = []
    current = ""
    for word in line.split():
        candidate = f"{current} {word}" if current else word
        if metrics.width(candidate, size) <= max_width:
            current = candidate
            continue
        if current:
            out.append(current)
        if metrics.width(word, size) <= max_width:
            current = word
            continue
        pieces = _split_word(word, metrics, size, max_width)
        out.extend(pieces[:-1])
        # the tail of a split word can still take the following words
        current = pieces[-1] if pieces else ""
    if current:
        out.append(current)
    return out


def _classify(line: str) -> Tuple[str, float]:
    m = HEADING.match(line)
    if m:
        return line[m.end():].strip(), HEADING_SIZES[len(m.group(1))]
    return line, BODY_SIZE


# ------------------------------------------------------------------------------
# Layout
# ------------------------------------------------------------------------------

def layout(
    text: str,
    title: str,
    metrics: FontMetrics,
    geometry: PageGeometry = A4_GEOMETRY,
) -> Document:
    """
    Lay out Markdown-flavoured contract text on fixed-size pages.

    - `#`, `##`, `###` prefixes are stripped and promote the font size.
    - Blank lines add half a line of space and draw nothing.
    - A new page is started whenever the next run would cross the bottom margin.
    """
    doc = Document(title=title)
    page = doc.add_page(geometry)
    max_width = geometry.usable_width
    top = geometry.height - geometry.margin

    y = top
    title_lines = wrap_line(title or "", metrics, TITLE_SIZE, max_width)
    for i, title_line in enumerate(title_lines):
        if i:
            y -= TITLE_LINE_HEIGHT
        page.runs.append(TextRun(title_line, geometry.margin, y, TITLE_SIZE))
    y -= TITLE_SIZE + TITLE_GAP

    for raw_line in (text or "").replace("\r", "").split("\n"):
        line, size = _classify(raw_line)
        if not line.strip():
            y -= LINE_HEIGHT / 2
            continue

        for out_line in wrap_line(line, metrics, size, max_width):
            if y - LINE_HEIGHT < geometry.margin:
                page = doc.add_page(geometry)
                y = top
            page.runs.append(TextRun(out_line, geometry.margin, y, size))
            y -= LINE_HEIGHT

    return doc


# ------------------------------------------------------------------------------
# Serialization
# ------------------------------------------------------------------------------

def render(document: Document, font: FontMetrics) -> bytes:
    buf = BytesIO()
    first = document.pages[0] if document.pages else Page(*A4)
    pdf = canvas.Canvas(buf, pagesize=(first.width, first.height))
    pdf.setTitle(document.title)
    pdf.setAuthor("SignChain")

    for page in document.pages:
        pdf.setPageSize((page.width, page.height))
        for run in page.runs:
            pdf.setFont(font.name, run.size)
            pdf.drawString(run.x, run.y, run.text)
        pdf.showPage()

    pdf.save()
    data = buf.getvalue()
    buf.close()
    return data


def export_pdf(text: str, title: str, font_path: Optional[str] = None) -> bytes:
    """
    Text -> laid-out Document -> PDF bytes. Any failure surfaces as a single
    PdfExportError; there is no partial output.
    """
    try:
        font = load_font(font_path)
        document = layout(text, title, font)
        data = render(document, font)
    except PdfExportError:
        raise
    except Exception as exc:
        log.exception("PDF export failed: %s", exc)
        raise PdfExportError(f"PDF generation failed: {exc}") from exc

    log.info("export_pdf: pages=%d bytes=%d", len(document.pages), len(data))
    return data
