from __future__ import annotations

import hashlib
import io
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from fontTools.ttLib import TTFont as FontToolsTTFont
from fontTools.varLib.instancer import instantiateVariableFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFont

from healthreport.adapters.font_fetch import FontFetchConfig, HttpFontFetcher
from healthreport.config import get_settings
from healthreport.errors import FontLoadError
from healthreport.report.scripts import classify
from healthreport.types import FontFamily, FontOrigin


logger = logging.getLogger(__name__)

FontFetcher = Callable[[str], bytes]

BUILTIN_FALLBACK_FONTS: dict[FontFamily, str] = {
    FontFamily.body: 'Helvetica',
    FontFamily.body_bold: 'Helvetica-Bold',
    FontFamily.cjk: 'STSong-Light',
    FontFamily.cjk_bold: 'STSong-Light',
}


@dataclass(frozen=True)
class FontResource:
    family: FontFamily
    font_name: str
    origin: FontOrigin
    data: bytes = field(default=b'', repr=False)

    def width(self, text: str, size: float) -> float:
        if not text:
            return 0.0
        return float(pdfmetrics.stringWidth(text, self.font_name, size))


def _static_instance(font: FontToolsTTFont, weight: int) -> FontToolsTTFont:
    location: dict[str, float | None] = {axis.axisTag: None for axis in font['fvar'].axes}
    for axis in font['fvar'].axes:
        if axis.axisTag == 'wght':
            location['wght'] = min(max(float(weight), axis.minValue), axis.maxValue)
    return instantiateVariableFont(font, location)


def _truetype_bytes(data: bytes, *, weight: int = 400) -> bytes:
    """Plain static TrueType bytes for ReportLab.

    WOFF / WOFF2 are unwrapped and variable fonts are pinned to ``weight``,
    every other axis at its default.
    """
    if not data:
        raise ValueError('empty font payload')
    source = FontToolsTTFont(io.BytesIO(data))
    font = source
    try:
        if 'glyf' not in font:
            raise ValueError('unsupported outlines (CFF/PostScript); TrueType glyf table required')
        if not font.flavor and 'fvar' not in font:
            return data
        if 'fvar' in font:
            font = _static_instance(source, weight)
        font.flavor = None
        buffer = io.BytesIO()
        font.save(buffer)
        return buffer.getvalue()
    finally:
        if font is not source:
            font.close()
        source.close()


def _register_truetype(family: FontFamily, data: bytes) -> str:
    digest = hashlib.sha1(data).hexdigest()[:12]
    font_name = f'HR-{family.value}-{digest}'
    if font_name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(font_name, io.BytesIO(data)))
    return font_name


def _register_builtin(family: FontFamily) -> str:
    font_name = BUILTIN_FALLBACK_FONTS[family]
    if family in (FontFamily.cjk, FontFamily.cjk_bold):
        if font_name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(UnicodeCIDFont(font_name))
    else:
        pdfmetrics.getFont(font_name)
    return font_name


class FontCache:
    """Process-wide store of embeddable fonts, filled lazily per family.

    Lookups of an already loaded family never block. The first request for a
    family takes that family's fill lock, so concurrent first requests perform
    the local read / remote fetch once while other families load independently.
    """

    def __init__(
        self,
        *,
        local_paths: Mapping[str, Path] | None = None,
        fetch: FontFetcher | None = None,
        allow_builtin_fallback: bool = False,
    ):
        self._local_paths = {FontFamily(key): Path(value) for key, value in (local_paths or {}).items()}
        self._fetch = fetch
        self._allow_builtin_fallback = allow_builtin_fallback
        self._fonts: dict[FontFamily, FontResource] = {}
        self._fill_locks = {family: threading.Lock() for family in FontFamily}

    def get_font(self, family: FontFamily | str) -> FontResource:
        family = FontFamily(family)
        cached = self._fonts.get(family)
        if cached is not None:
            return cached

        with self._fill_locks[family]:
            cached = self._fonts.get(family)
            if cached is not None:
                return cached
            resource = self._load(family)
            self._fonts[family] = resource
            return resource

    def loaded(self) -> dict[FontFamily, FontResource]:
        return dict(self._fonts)

    def _load(self, family: FontFamily) -> FontResource:
        reasons: list[str] = []

        local_path = self._local_paths.get(family)
        if local_path is None:
            reasons.append('no local path configured')
        elif not local_path.is_file():
            reasons.append(f'local font missing at {local_path}')
        else:
            try:
                return self._from_bytes(family, local_path.read_bytes(), FontOrigin.local)
            except Exception as exc:
                logger.warning('Failed to load PDF font %s from %s: %s', family.value, local_path, exc)
                reasons.append(f'local {local_path}: {exc}')

        if self._fetch is None:
            reasons.append('no remote fetcher configured')
        else:
            try:
                return self._from_bytes(family, self._fetch(family.value), FontOrigin.remote)
            except Exception as exc:
                logger.warning('Failed to fetch PDF font %s: %s', family.value, exc)
                reasons.append(f'remote: {type(exc).__name__}: {exc}')

        if self._allow_builtin_fallback:
            try:
                font_name = _register_builtin(family)
            except Exception as exc:
                reasons.append(f'builtin: {exc}')
            else:
                logger.warning('Using built-in PDF font %s for %s', font_name, family.value)
                return FontResource(family=family, font_name=font_name, origin=FontOrigin.builtin)

        raise FontLoadError(family.value, '; '.join(reasons))

    def _from_bytes(self, family: FontFamily, data: bytes, origin: FontOrigin) -> FontResource:
        payload = _truetype_bytes(data, weight=family.weight)
        font_name = _register_truetype(family, payload)
        logger.info('Loaded PDF font %s as %s (%s, %d bytes)', family.value, font_name, origin.value, len(payload))
        return FontResource(family=family, font_name=font_name, origin=origin, data=payload)


class FontSelector:
    """Resolves the face for a same-script text fragment."""

    def __init__(self, cache: FontCache, *, bold: bool = False):
        self.cache = cache
        self.bold = bold

    def __call__(self, fragment: str) -> FontResource:
        return self.cache.get_font(FontFamily.for_script(classify(fragment), bold=self.bold))


_DEFAULT_CACHE: FontCache | None = None
_DEFAULT_CACHE_LOCK = threading.Lock()


def get_font_cache() -> FontCache:
    global _DEFAULT_CACHE
    if _DEFAULT_CACHE is not None:
        return _DEFAULT_CACHE

    with _DEFAULT_CACHE_LOCK:
        if _DEFAULT_CACHE is None:
            settings = get_settings()
            fetcher = HttpFontFetcher(
                FontFetchConfig(
                    urls=settings.font_urls(),
                    timeout_seconds=settings.pdf_font_fetch_timeout_seconds,
                )
            )
            _DEFAULT_CACHE = FontCache(
                local_paths=settings.font_paths(),
                fetch=fetcher,
                allow_builtin_fallback=settings.pdf_font_allow_builtin_fallback,
            )
    return _DEFAULT_CACHE
