from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from healthreport.errors import FontLoadError, RenderError
from healthreport.report.fonts import get_font_cache
from healthreport.report.health_report_pdf import render_health_report
from healthreport.types import FontFamily, ReportImage, ReportRecord


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _load_report(path: Path) -> ReportRecord:
    payload = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(payload, dict):
        raise ValueError('report JSON must be an object')

    image_base64 = payload.pop('image_base64', None)
    image_data = payload.pop('image_data', None)
    image_path = payload.pop('image_path', None)
    mime_type = payload.pop('image_mime_type', None)
    filename = payload.pop('image_filename', None)
    payload.pop('image', None)

    report = ReportRecord.model_validate(payload)
    if image_path:
        source = Path(image_path).expanduser()
        if not source.is_absolute():
            source = path.parent / source
        image = ReportImage(data=source.read_bytes(), mime_type=mime_type, filename=filename or source.name)
        return report.model_copy(update={'image': image})
    if image_base64 or image_data:
        image = ReportImage.from_base64(image_base64 or image_data, mime_type=mime_type, filename=filename)
        return report.model_copy(update={'image': image})
    return report


def cmd_render(args: argparse.Namespace) -> int:
    input_path = Path(args.input).expanduser().resolve()
    if not input_path.is_file():
        _print_json({'status': 'error', 'message': f'Report JSON not found: {input_path}'})
        return 2

    try:
        report = _load_report(input_path)
    except (ValueError, OSError) as exc:
        _print_json({'status': 'error', 'message': f'Invalid report JSON: {exc}'})
        return 2

    try:
        result = render_health_report(report)
    except RenderError as exc:
        _print_json({'status': 'error', 'error_type': type(exc).__name__, 'message': str(exc)})
        return 1

    output = Path(args.output or '.').expanduser()
    if output.is_dir() or not output.suffix:
        output = output / result.filename
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.content)

    _print_json(
        {
            'status': 'ok',
            'output_path': str(output.resolve()),
            'filename': result.filename,
            'page_count': result.page_count,
            'bytes': len(result.content),
        }
    )
    return 0


def cmd_fonts(args: argparse.Namespace) -> int:
    cache = get_font_cache()
    rows: list[dict] = []
    failed = False
    for family in FontFamily:
        try:
            font = cache.get_font(family)
        except FontLoadError as exc:
            failed = True
            rows.append({'family': family.value, 'status': 'error', 'message': str(exc)})
            continue
        rows.append(
            {
                'family': family.value,
                'status': 'ok',
                'font_name': font.font_name,
                'origin': font.origin.value,
                'bytes': len(font.data),
            }
        )
    _print_json({'fonts': rows})
    return 2 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Health report PDF renderer')
    parser.add_argument('--log-level', default='INFO', help='Logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    render = sub.add_parser('render', help='Render a report JSON file to PDF')
    render.add_argument('--input', required=True, help='Path to report JSON')
    render.add_argument('--output', required=False, help='Output PDF path or directory')
    render.set_defaults(func=cmd_render)

    fonts = sub.add_parser('fonts', help='Resolve all font families and show where they came from')
    fonts.set_defaults(func=cmd_fonts)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
