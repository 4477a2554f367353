from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'HealthConsultant Report Renderer'

    # Local font bundle, one file per logical family
    pdf_font_dir: Path = Field(
        default=Path('assets/fonts'),
        validation_alias=AliasChoices('pdf_font_dir', 'FONT_DIR'),
    )
    pdf_font_body_file: str = 'NotoSans-Regular.ttf'
    pdf_font_body_bold_file: str = 'NotoSans-Bold.ttf'
    pdf_font_cjk_file: str = 'NotoSansSC-Regular.ttf'
    pdf_font_cjk_bold_file: str = 'NotoSansSC-Bold.ttf'

    # Remote fallback when the bundle is missing; a shared URL is fetched once
    pdf_font_body_url: str | None = (
        'https://github.com/googlefonts/noto-fonts/raw/main/hinted/ttf/NotoSans/NotoSans-Regular.ttf'
    )
    pdf_font_body_bold_url: str | None = (
        'https://github.com/googlefonts/noto-fonts/raw/main/hinted/ttf/NotoSans/NotoSans-Bold.ttf'
    )
    pdf_font_cjk_url: str | None = 'https://github.com/google/fonts/raw/main/ofl/notosanssc/NotoSansSC%5Bwght%5D.ttf'
    pdf_font_cjk_bold_url: str | None = (
        'https://github.com/google/fonts/raw/main/ofl/notosanssc/NotoSansSC%5Bwght%5D.ttf'
    )
    pdf_font_fetch_timeout_seconds: float = 20.0
    pdf_font_allow_builtin_fallback: bool = False

    # Document
    pdf_header_text: str = 'Health Report Summary'
    pdf_footer_text: str = 'Generated by HealthConsultant AI'
    pdf_author: str = 'HealthConsultant AI'
    pdf_producer: str = 'HealthConsultant Report Renderer'
    pdf_max_image_bytes: int = 10 * 1024 * 1024
    pdf_verify_output: bool = True
    pdf_invariant: bool = True

    def font_paths(self) -> dict[str, Path]:
        return {
            'body': self.pdf_font_dir / self.pdf_font_body_file,
            'body-bold': self.pdf_font_dir / self.pdf_font_body_bold_file,
            'cjk': self.pdf_font_dir / self.pdf_font_cjk_file,
            'cjk-bold': self.pdf_font_dir / self.pdf_font_cjk_bold_file,
        }

    def font_urls(self) -> dict[str, str]:
        urls = {
            'body': self.pdf_font_body_url,
            'body-bold': self.pdf_font_body_bold_url,
            'cjk': self.pdf_font_cjk_url,
            'cjk-bold': self.pdf_font_cjk_bold_url,
        }
        return {family: url.strip() for family, url in urls.items() if url and url.strip()}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
