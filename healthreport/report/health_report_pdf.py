from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime

from pypdf import PdfReader
from reportlab.lib.colors import Color

from healthreport.config import Settings, get_settings
from healthreport.errors import ImageDecodeError, SerializationError
from healthreport.report.fonts import FontCache, FontSelector, get_font_cache
from healthreport.report.images import IMAGE_BOX, decode_image
from healthreport.report.layout import LEFT_MARGIN, LINE_GAP, Document, layout_text
from healthreport.report.text import normalize
from healthreport.types import ReportImage, ReportRecord, RenderResult


logger = logging.getLogger(__name__)

HEADER_FONT_SIZE = 20
SECTION_FONT_SIZE = 16
META_TITLE_FONT_SIZE = 14
BODY_FONT_SIZE = 12
NARRATIVE_FONT_SIZE = 11
CAPTION_FONT_SIZE = 10
FOOTER_FONT_SIZE = 10

BULLET_INDENT = 60.0
SECTION_TITLE_GAP = 10.0
FOOTER_Y = 30.0

HEADER_COLOR = Color(0.2, 0.2, 0.2)
FOOTER_COLOR = Color(0.5, 0.5, 0.5)

IMAGE_PLACEHOLDER_TEXT = 'Image could not be included in PDF'

_FILENAME_UNSAFE_RE = re.compile(r'[\\/:*?"<>|]+')


@dataclass(frozen=True)
class RenderOptions:
    header_text: str = 'Health Report Summary'
    footer_text: str = 'Generated by HealthConsultant AI'
    author: str | None = None
    producer: str | None = None
    max_image_bytes: int | None = None
    verify_output: bool = True
    invariant: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> RenderOptions:
        return cls(
            header_text=settings.pdf_header_text,
            footer_text=settings.pdf_footer_text,
            author=settings.pdf_author,
            producer=settings.pdf_producer,
            max_image_bytes=settings.pdf_max_image_bytes,
            verify_output=settings.pdf_verify_output,
            invariant=settings.pdf_invariant,
        )


@dataclass
class _Pen:
    document: Document
    regular: FontSelector
    bold: FontSelector

    @property
    def page_width(self) -> float:
        return self.document.current.width

    def text(
        self,
        value: str,
        *,
        size: float,
        bold: bool = False,
        narrative: bool = False,
        x: float = LEFT_MARGIN,
        max_width: float | None = None,
    ) -> None:
        if max_width is None:
            max_width = self.page_width - 2 * LEFT_MARGIN
        layout_text(
            normalize(value, is_narrative_content=narrative),
            document=self.document,
            font_for=self.bold if bold else self.regular,
            font_size=size,
            max_width=max_width,
            x=x,
        )

    def gap(self, amount: float) -> None:
        self.document.current.advance(amount)

    def section_title(self, title: str, *, keep_with: float = 0.0) -> None:
        # The title, its gap and keep_with more points stay together on one page.
        self.document.ensure_space(SECTION_FONT_SIZE + LINE_GAP + SECTION_TITLE_GAP + keep_with)
        self.text(title, size=SECTION_FONT_SIZE, bold=True)
        self.gap(SECTION_TITLE_GAP)


def _display(value: str | None, default: str = 'N/A') -> str:
    token = str(value or '').strip()
    return token or default


def _format_date(value: datetime | None) -> str:
    if value is None:
        return 'N/A'
    return value.strftime('%Y-%m-%d')


def suggested_filename(title: str | None) -> str:
    stem = _FILENAME_UNSAFE_RE.sub('_', normalize(title)).strip(' ._')
    return f'{stem[:120] or "report"}_summary.pdf'


def _append_header(pen: _Pen, text: str) -> None:
    page = pen.document.current
    pen.document.draw_text(
        normalize(text),
        x=LEFT_MARGIN,
        y=page.cursor_y,
        font_for=pen.bold,
        font_size=HEADER_FONT_SIZE,
        color=HEADER_COLOR,
    )
    pen.gap(40)


def _append_image(pen: _Pen, image: ReportImage, *, max_bytes: int | None) -> None:
    try:
        decoded = decode_image(image, max_bytes=max_bytes)
    except ImageDecodeError as exc:
        logger.warning(
            'Embedded image %s skipped in PDF: %s',
            image.filename or image.mime_type or '(unnamed)',
            exc,
        )
        pen.text(IMAGE_PLACEHOLDER_TEXT, size=BODY_FONT_SIZE)
        pen.gap(20)
        return

    width, height = decoded.fit(*IMAGE_BOX)
    pen.section_title('ANALYZED IMAGE', keep_with=height)
    page = pen.document.ensure_space(height)
    pen.document.draw_image(decoded.reader, x=LEFT_MARGIN, y=page.cursor_y - height, width=width, height=height)
    page.advance(height + 20)

    if image.filename:
        pen.text(f'Image: {image.filename}', size=CAPTION_FONT_SIZE)
        pen.gap(15)


def _append_metadata(pen: _Pen, report: ReportRecord) -> None:
    pen.text(f'Report Title: {_display(report.title)}', size=META_TITLE_FONT_SIZE, bold=True)
    pen.text(f'Report Type: {_display(report.report_type)}', size=BODY_FONT_SIZE)
    pen.text(f'Date: {_format_date(report.created_at)}', size=BODY_FONT_SIZE)
    pen.text(f'Risk Level: {_display(report.risk_level, "normal").upper()}', size=BODY_FONT_SIZE, bold=True)
    pen.gap(20)


def _append_bulleted_section(pen: _Pen, title: str, items: list[str]) -> None:
    rows = [item for item in items if isinstance(item, str) and item.strip()]
    if not rows:
        return
    pen.section_title(title)
    for item in rows:
        pen.text(
            f'• {item}',
            size=BODY_FONT_SIZE,
            narrative=True,
            x=BULLET_INDENT,
            max_width=pen.page_width - 2 * BULLET_INDENT,
        )
    pen.gap(20)


def _append_footer(pen: _Pen, text: str) -> None:
    # Last page only, at a fixed offset; the cursor is left alone.
    pen.document.draw_text(
        normalize(text),
        x=LEFT_MARGIN,
        y=FOOTER_Y,
        font_for=pen.regular,
        font_size=FOOTER_FONT_SIZE,
        color=FOOTER_COLOR,
    )


def build_document(
    report: ReportRecord,
    *,
    fonts: FontCache,
    options: RenderOptions | None = None,
) -> Document:
    """Lay out every section of the report; the returned document is not yet saved."""
    options = options or RenderOptions()
    document = Document(
        title=normalize(report.title) or options.header_text,
        author=options.author,
        producer=options.producer,
        invariant=options.invariant,
    )
    pen = _Pen(
        document=document,
        regular=FontSelector(fonts, bold=False),
        bold=FontSelector(fonts, bold=True),
    )

    _append_header(pen, options.header_text)

    if report.image is not None:
        _append_image(pen, report.image, max_bytes=options.max_image_bytes)

    _append_metadata(pen, report)

    if report.summary and report.summary.strip():
        pen.section_title('SUMMARY')
        pen.text(report.summary, size=BODY_FONT_SIZE, narrative=True)
        pen.gap(20)

    _append_bulleted_section(pen, 'KEY FINDINGS', report.key_findings)
    _append_bulleted_section(pen, 'RECOMMENDATIONS', report.recommendations)

    if report.analysis and report.analysis.strip():
        pen.section_title('DETAILED ANALYSIS')
        pen.text(report.analysis, size=NARRATIVE_FONT_SIZE, narrative=True)

    _append_footer(pen, options.footer_text)
    return document


def _verify_pdf(content: bytes, expected_pages: int) -> None:
    try:
        page_count = len(PdfReader(io.BytesIO(content)).pages)
    except Exception as exc:
        raise SerializationError(f'rendered PDF is not readable: {exc}') from exc
    if page_count != expected_pages:
        raise SerializationError(f'rendered PDF has {page_count} pages, expected {expected_pages}')


def render_health_report(
    report: ReportRecord,
    *,
    fonts: FontCache | None = None,
    options: RenderOptions | None = None,
) -> RenderResult:
    if fonts is None:
        fonts = get_font_cache()
    if options is None:
        options = RenderOptions.from_settings(get_settings())

    document = build_document(report, fonts=fonts, options=options)
    content = document.save()
    if options.verify_output:
        _verify_pdf(content, document.page_count)

    result = RenderResult(
        content=content,
        filename=suggested_filename(report.title),
        page_count=document.page_count,
    )
    logger.info('Rendered %s: %d page(s), %d bytes', result.filename, result.page_count, len(content))
    return result
