"""
Shared pytest fixtures.

Fonts come from ReportLab's bundled Vera faces, served through the injected
fetch capability so no test touches the network or a local font bundle.
"""

import io
import threading
from pathlib import Path

import pytest
import reportlab
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fontTools.ttLib.tables.TupleVariation import TupleVariation
from PIL import Image

from healthreport.report.fonts import FontCache
from healthreport.report.layout import Document


REPORTLAB_FONT_DIR = Path(reportlab.__file__).resolve().parent / 'fonts'


class RecordingFetcher:
    """Serves font bytes per family and counts how often each was requested."""

    def __init__(self, payloads):
        self.payloads = payloads
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, family):
        with self._lock:
            self.calls.append(family)
        if family not in self.payloads:
            raise LookupError(f'no payload for {family}')
        return self.payloads[family]


@pytest.fixture(scope='session')
def vera_bytes():
    regular = REPORTLAB_FONT_DIR / 'Vera.ttf'
    bold = REPORTLAB_FONT_DIR / 'VeraBd.ttf'
    if not (regular.is_file() and bold.is_file()):
        pytest.skip('ReportLab bundled Vera fonts are not available')
    return {'regular': regular.read_bytes(), 'bold': bold.read_bytes()}


@pytest.fixture
def font_payloads(vera_bytes):
    return {
        'body': vera_bytes['regular'],
        'body-bold': vera_bytes['bold'],
        'cjk': vera_bytes['regular'],
        'cjk-bold': vera_bytes['bold'],
    }


@pytest.fixture
def fetcher(font_payloads):
    return RecordingFetcher(font_payloads)


@pytest.fixture
def font_cache(fetcher):
    return FontCache(fetch=fetcher)


@pytest.fixture
def document():
    return Document(title='Test document')


def _image_bytes(fmt, size=(600, 300), mode='RGB', color=(200, 40, 40)):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return _image_bytes('PNG')


@pytest.fixture
def jpeg_bytes():
    return _image_bytes('JPEG', size=(120, 480))


@pytest.fixture
def truncated_png_bytes():
    return _image_bytes('PNG')[:40]


def _build_weight_axis_font():
    """A tiny glyf font with a wght axis (100..900, default 400) whose outlines widen with weight."""
    glyph_order = ['.notdef', 'space', 'A', 'a']
    builder = FontBuilder(1000, isTTF=True)
    builder.setupGlyphOrder(glyph_order)
    builder.setupCharacterMap({32: 'space', 65: 'A', 97: 'a'})

    pen = TTGlyphPen(None)
    pen.moveTo((100, 0))
    pen.lineTo((100, 700))
    pen.qCurveTo((200, 750), (400, 750), (500, 700))
    pen.lineTo((500, 0))
    pen.closePath()
    glyph = pen.glyph()
    builder.setupGlyf({name: glyph for name in glyph_order})
    builder.setupHorizontalMetrics({name: (600, 100) for name in glyph_order})
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupNameTable(
        {
            'familyName': 'Weight Axis Test',
            'styleName': 'Regular',
            'psName': 'WeightAxisTest-Regular',
        }
    )
    builder.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    builder.setupPost()
    builder.setupFvar([('wght', 100, 400, 900, 'Weight')], [])

    # 6 outline points + 4 phantom points; the right edge moves out at 900.
    deltas = [(0, 0), (0, 0), (0, 0), (120, 0), (120, 0), (120, 0), (0, 0), (120, 0), (0, 0), (0, 0)]
    builder.setupGvar({name: [TupleVariation({'wght': (0.0, 1.0, 1.0)}, deltas)] for name in glyph_order})

    buffer = io.BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


@pytest.fixture(scope='session')
def variable_font_bytes():
    return _build_weight_axis_font()
