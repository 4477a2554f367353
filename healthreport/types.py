from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ScriptClass(str, Enum):
    latin = 'latin'
    cyrillic = 'cyrillic'
    arabic = 'arabic'
    cjk = 'cjk'


class FontFamily(str, Enum):
    body = 'body'
    body_bold = 'body-bold'
    cjk = 'cjk'
    cjk_bold = 'cjk-bold'

    @classmethod
    def for_script(cls, script: ScriptClass, *, bold: bool = False) -> FontFamily:
        # Cyrillic and Arabic share the Latin-script faces.
        if script == ScriptClass.cjk:
            return cls.cjk_bold if bold else cls.cjk
        return cls.body_bold if bold else cls.body

    @property
    def weight(self) -> int:
        return 700 if self in (FontFamily.body_bold, FontFamily.cjk_bold) else 400


class FontOrigin(str, Enum):
    local = 'local'
    remote = 'remote'
    builtin = 'builtin'


class ReportImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes = b''
    mime_type: str | None = None
    filename: str | None = None

    @classmethod
    def from_base64(
        cls,
        payload: str | None,
        *,
        mime_type: str | None = None,
        filename: str | None = None,
    ) -> ReportImage:
        token = str(payload or '').strip()
        if token.startswith('data:') and ',' in token:
            header, token = token.split(',', 1)
            if mime_type is None:
                mime_type = header[5:].split(';', 1)[0] or None
        try:
            data = base64.b64decode(token, validate=False)
        except (binascii.Error, ValueError):
            data = b''
        return cls(data=data, mime_type=mime_type, filename=filename)


class ReportRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str | None = None
    report_type: str | None = None
    created_at: datetime | None = None
    risk_level: str | None = None
    summary: str | None = Field(default=None, validation_alias=AliasChoices('summary', 'ai_summary'))
    key_findings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    analysis: str | None = Field(default=None, validation_alias=AliasChoices('analysis', 'ai_analysis'))
    image: ReportImage | None = None


@dataclass(frozen=True)
class RenderResult:
    content: bytes
    filename: str
    page_count: int
    media_type: str = 'application/pdf'
