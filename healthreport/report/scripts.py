from __future__ import annotations

from dataclasses import dataclass

from healthreport.types import ScriptClass


_CJK_RANGES = (
    (0x3400, 0x4DBF),  # CJK Extension A
    (0x4E00, 0x9FFF),  # CJK Unified Ideographs
    (0xF900, 0xFAFF),  # CJK Compatibility Ideographs
)
_CYRILLIC_RANGE = (0x0400, 0x04FF)
_ARABIC_RANGE = (0x0600, 0x06FF)

_PRIORITY = (ScriptClass.cjk, ScriptClass.cyrillic, ScriptClass.arabic, ScriptClass.latin)


@dataclass(frozen=True)
class ScriptRun:
    text: str
    script: ScriptClass


def char_script(char: str) -> ScriptClass:
    code = ord(char)
    for lower, upper in _CJK_RANGES:
        if lower <= code <= upper:
            return ScriptClass.cjk
    if _CYRILLIC_RANGE[0] <= code <= _CYRILLIC_RANGE[1]:
        return ScriptClass.cyrillic
    if _ARABIC_RANGE[0] <= code <= _ARABIC_RANGE[1]:
        return ScriptClass.arabic
    return ScriptClass.latin


def classify(text: str | None) -> ScriptClass:
    """Whole-fragment script class: the highest-priority script found wins."""
    found = {char_script(char) for char in str(text or '')}
    for script in _PRIORITY:
        if script in found:
            return script
    return ScriptClass.latin


def split_runs(text: str | None) -> list[ScriptRun]:
    """Split text into maximal same-script runs.

    Whitespace is script-neutral: it stays with the run in progress, and
    leading whitespace joins the first run.
    """
    runs: list[ScriptRun] = []
    buffer = ''
    current: ScriptClass | None = None

    for char in str(text or ''):
        if char.isspace():
            buffer += char
            continue
        script = char_script(char)
        if current is None:
            current = script
        elif script != current:
            runs.append(ScriptRun(buffer, current))
            buffer = ''
            current = script
        buffer += char

    if buffer:
        runs.append(ScriptRun(buffer, current or ScriptClass.latin))
    return runs
