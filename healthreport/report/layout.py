from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Callable

from reportlab.lib.colors import Color
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from healthreport.errors import SerializationError, UnrenderableGlyphError
from healthreport.report.fonts import FontResource
from healthreport.report.scripts import split_runs


logger = logging.getLogger(__name__)

# ISO A4 in points
PAGE_WIDTH = 595.28
PAGE_HEIGHT = 841.89

LEFT_MARGIN = 50.0
TOP_MARGIN = 50.0
BOTTOM_MARGIN = 100.0
LINE_GAP = 5.0

PLACEHOLDER_TEXT = '[Text rendering error]'

FontFor = Callable[[str], FontResource]


@dataclass
class PageState:
    number: int
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    top_margin: float = TOP_MARGIN
    cursor_y: float = field(init=False)

    def __post_init__(self) -> None:
        self.cursor_y = self.height - self.top_margin

    def move_to(self, y: float) -> None:
        if y > self.cursor_y:
            raise ValueError(f'cursor on page {self.number} cannot move up ({self.cursor_y:.2f} -> {y:.2f})')
        self.cursor_y = y

    def advance(self, delta: float) -> None:
        self.move_to(self.cursor_y - max(0.0, float(delta)))


@dataclass(frozen=True)
class TextRun:
    text: str
    font: FontResource
    width: float


@dataclass(frozen=True)
class PlacedLine:
    page_number: int
    x: float
    y: float
    font_size: float
    runs: tuple[TextRun, ...]
    placeholder: bool = False

    @property
    def text(self) -> str:
        return ''.join(run.text for run in self.runs)

    @property
    def width(self) -> float:
        return sum(run.width for run in self.runs)


def shape_text(text: str, font_for: FontFor, font_size: float) -> list[TextRun]:
    """Split text into same-script runs, each measured in its own face."""
    shaped: list[TextRun] = []
    for run in split_runs(text):
        font = font_for(run.text)
        shaped.append(TextRun(text=run.text, font=font, width=font.width(run.text, font_size)))
    return shaped


def measure_text(text: str, font_for: FontFor, font_size: float) -> float:
    return sum(run.width for run in shape_text(text, font_for, font_size))


class Document:
    """A PDF under construction: an A4 canvas plus the pages drawn so far.

    Pages are only ever appended; drawing always targets the last page.
    """

    def __init__(
        self,
        *,
        title: str | None = None,
        author: str | None = None,
        producer: str | None = None,
        invariant: bool = True,
        bottom_margin: float = BOTTOM_MARGIN,
    ):
        self._buffer = io.BytesIO()
        self._canvas = pdf_canvas.Canvas(
            self._buffer,
            pagesize=(PAGE_WIDTH, PAGE_HEIGHT),
            invariant=1 if invariant else 0,
        )
        if title:
            self._canvas.setTitle(title)
        if author:
            self._canvas.setAuthor(author)
            self._canvas.setCreator(author)
        if producer:
            self._canvas.setProducer(producer)

        self.bottom_margin = bottom_margin
        self.pages: list[PageState] = [PageState(number=1)]
        self.placed: list[PlacedLine] = []
        self._saved: bytes | None = None

    @property
    def current(self) -> PageState:
        return self.pages[-1]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def new_page(self) -> PageState:
        self._canvas.showPage()
        page = PageState(number=len(self.pages) + 1)
        self.pages.append(page)
        logger.debug('Allocated PDF page %d', page.number)
        return page

    def ensure_space(self, height: float) -> PageState:
        page = self.current
        if page.cursor_y - height < self.bottom_margin:
            page = self.new_page()
        return page

    def draw_text(
        self,
        text: str,
        *,
        x: float,
        y: float,
        font_for: FontFor,
        font_size: float,
        color: Color | None = None,
    ) -> PlacedLine:
        runs = shape_text(text, font_for, font_size)
        try:
            return self._draw_runs(runs, x=x, y=y, font_size=font_size, color=color)
        except UnrenderableGlyphError as exc:
            logger.warning(
                'Substituting placeholder for unrenderable line on page %d: %s (%r)',
                self.current.number,
                exc,
                text[:100],
            )
        fallback = shape_text(PLACEHOLDER_TEXT, font_for, font_size)
        return self._draw_runs(fallback, x=x, y=y, font_size=font_size, color=color, placeholder=True)

    def draw_image(self, image: ImageReader, *, x: float, y: float, width: float, height: float) -> None:
        self._canvas.drawImage(image, x, y, width=width, height=height, mask='auto')

    def save(self) -> bytes:
        if self._saved is not None:
            return self._saved
        try:
            self._canvas.save()
        except Exception as exc:
            raise SerializationError(f'failed to serialize PDF: {exc}') from exc
        self._saved = self._buffer.getvalue()
        return self._saved

    def _draw_runs(
        self,
        runs: list[TextRun],
        *,
        x: float,
        y: float,
        font_size: float,
        color: Color | None,
        placeholder: bool = False,
    ) -> PlacedLine:
        # The text object is built off-canvas, so a failing run leaves the page untouched.
        text_object = self._canvas.beginText(x, y)
        try:
            if color is not None:
                text_object.setFillColor(color)
            for run in runs:
                text_object.setFont(run.font.font_name, font_size)
                text_object.textOut(run.text)
        except Exception as exc:
            raise UnrenderableGlyphError(f'{type(exc).__name__}: {exc}') from exc
        self._canvas.drawText(text_object)

        placed = PlacedLine(
            page_number=self.current.number,
            x=x,
            y=y,
            font_size=font_size,
            runs=tuple(runs),
            placeholder=placeholder,
        )
        self.placed.append(placed)
        return placed


def layout_text(
    text: str,
    *,
    document: Document,
    font_for: FontFor,
    font_size: float,
    max_width: float,
    x: float = LEFT_MARGIN,
    start_y: float | None = None,
    color: Color | None = None,
) -> float:
    """Greedy word-wrap of text onto the document, breaking pages as needed.

    Lines advance by font_size + LINE_GAP. A line about to be drawn below the
    bottom margin goes to a freshly allocated page instead. A single word wider
    than max_width is drawn alone on its line, unsplit. Returns the cursor
    position after the last line.
    """
    if start_y is not None:
        document.current.move_to(start_y)

    words = text.split()
    if not words:
        return document.current.cursor_y

    def _commit(line: str) -> None:
        page = document.current
        if page.cursor_y < document.bottom_margin:
            page = document.new_page()
        document.draw_text(
            line.rstrip(' '),
            x=x,
            y=page.cursor_y,
            font_for=font_for,
            font_size=font_size,
            color=color,
        )
        page.advance(font_size + LINE_GAP)

    line = ''
    for word in words:
        candidate = f'{line}{word} '
        if line and measure_text(candidate, font_for, font_size) > max_width:
            _commit(line)
            line = f'{word} '
        else:
            line = candidate

    if line:
        _commit(line)
    return document.current.cursor_y
