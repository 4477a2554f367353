from __future__ import annotations

import re


_HEADING_RE = re.compile(r'^#{1,6}\s+', re.MULTILINE)
_ORDERED_ITEM_RE = re.compile(r'^\s*(?:\d+[.)]\s+)+', re.MULTILINE)
_BULLET_RE = re.compile(r'^\s*[-*+]\s+', re.MULTILINE)
_BOLD_STAR_RE = re.compile(r'\*\*([^*\n]+)\*\*')
_BOLD_UNDERSCORE_RE = re.compile(r'__([^_\n]+)__')
_ITALIC_STAR_RE = re.compile(r'\*([^*\n]+)\*')
_ITALIC_UNDERSCORE_RE = re.compile(r'_([^_\n]+)_')
_MARKUP_ARTIFACT_RE = re.compile(r'[#*_`~]')

_LINE_BREAK_RE = re.compile(r'[\r\n\t]+')
_WHITESPACE_RE = re.compile(r'\s+')
# C0/C1 controls, DEL and lone surrogates cannot be drawn or encoded.
_CONTROL_RE = re.compile(r'[\x00-\x1f\x7f-\x9f\ud800-\udfff]')


def _strip_markup(text: str) -> str:
    text = _HEADING_RE.sub('\n', text)
    text = _ORDERED_ITEM_RE.sub('\n', text)
    text = _BULLET_RE.sub('\n• ', text)
    text = _BOLD_STAR_RE.sub(r'\1', text)
    text = _BOLD_UNDERSCORE_RE.sub(r'\1', text)
    text = _ITALIC_STAR_RE.sub(r'\1', text)
    text = _ITALIC_UNDERSCORE_RE.sub(r'\1', text)
    return _MARKUP_ARTIFACT_RE.sub('', text)


def _sanitize(text: str) -> str:
    text = _LINE_BREAK_RE.sub(' ', text)
    text = _WHITESPACE_RE.sub(' ', text)
    text = _CONTROL_RE.sub('', text)
    text = _WHITESPACE_RE.sub(' ', text)
    return text.strip()


def normalize(raw: str | None, is_narrative_content: bool = False) -> str:
    """Flatten text to a single clean line ready for layout.

    Narrative content additionally loses markdown decoration: headings,
    emphasis and ordered-list prefixes are dropped and bullet markers become
    a leading "• ". The result is a fixed point: normalizing it again returns
    it unchanged.
    """
    if raw is None:
        return ''
    text = str(raw)
    if not is_narrative_content:
        return _sanitize(text)

    result = _sanitize(_strip_markup(text))
    # Dropping artifacts can expose a list marker at the start of the text.
    while True:
        again = _sanitize(_strip_markup(result))
        if again == result:
            return result
        result = again
