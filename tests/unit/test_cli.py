"""
Settings and command-line wiring tests.
"""

import base64
import json
from pathlib import Path

import pytest

import main
from healthreport.config import Settings
from healthreport.report import fonts as fonts_module


@pytest.fixture
def default_cache(font_cache, monkeypatch):
    monkeypatch.setattr(fonts_module, '_DEFAULT_CACHE', font_cache)
    return font_cache


class TestSettings:
    def test_font_paths_per_family(self):
        settings = Settings(_env_file=None, pdf_font_dir=Path('/fonts'))
        paths = settings.font_paths()
        assert set(paths) == {'body', 'body-bold', 'cjk', 'cjk-bold'}
        assert paths['body'] == Path('/fonts/NotoSans-Regular.ttf')

    def test_blank_urls_dropped(self):
        settings = Settings(_env_file=None, pdf_font_cjk_url='  ', pdf_font_cjk_bold_url=None)
        assert set(settings.font_urls()) == {'body', 'body-bold'}

    def test_env_alias(self, monkeypatch):
        monkeypatch.setenv('FONT_DIR', '/opt/fonts')
        assert Settings(_env_file=None).pdf_font_dir == Path('/opt/fonts')


class TestCli:
    def test_render_writes_pdf(self, tmp_path, default_cache, png_bytes, capsys):
        report_path = tmp_path / 'report.json'
        report_path.write_text(
            json.dumps(
                {
                    'title': 'Skin check',
                    'ai_summary': 'Looks fine.',
                    'key_findings': ['Symmetric border'],
                    'image_base64': base64.b64encode(png_bytes).decode('ascii'),
                    'image_mime_type': 'image/png',
                    'image_filename': 'skin.png',
                }
            ),
            encoding='utf-8',
        )
        out_dir = tmp_path / 'out'
        out_dir.mkdir()

        assert main.main(['render', '--input', str(report_path), '--output', str(out_dir)]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload['status'] == 'ok'
        assert payload['page_count'] == 1
        written = out_dir / 'Skin check_summary.pdf'
        assert written.read_bytes().startswith(b'%PDF-')

    def test_render_missing_input(self, tmp_path, capsys):
        assert main.main(['render', '--input', str(tmp_path / 'absent.json')]) == 2
        assert json.loads(capsys.readouterr().out)['status'] == 'error'

    def test_render_invalid_json_shape(self, tmp_path, capsys):
        report_path = tmp_path / 'report.json'
        report_path.write_text('[1, 2, 3]', encoding='utf-8')
        assert main.main(['render', '--input', str(report_path)]) == 2

    def test_fonts_lists_origins(self, default_cache, capsys):
        assert main.main(['fonts']) == 0
        rows = json.loads(capsys.readouterr().out)['fonts']
        assert [row['family'] for row in rows] == ['body', 'body-bold', 'cjk', 'cjk-bold']
        assert all(row['origin'] == 'remote' for row in rows)
