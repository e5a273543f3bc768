#!/usr/bin/env python3
"""
docxfill - Main CLI
Render .docx templates with JSON data, validate templates, run the HTTP daemon
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from config import load_settings
from docx_document import DocxDocument
from errors import DocxFillError
from template_validator import TemplateValidator

logger = logging.getLogger(__name__)


def default_output_path(template_path: str) -> str:
    """template.docx -> template_out.docx, next to the template"""
    base, _ = os.path.splitext(template_path)
    return base + '_out.docx'


def load_data(data_path: Optional[str]) -> dict:
    """Read the JSON data file; '-' reads standard input, None means no data"""
    if not data_path:
        return {}
    if data_path == '-':
        data = json.load(sys.stdin)
    else:
        with open(data_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{data_path}: top-level JSON value must be an object")
    return data


def render_template(template_path: str, data_path: Optional[str], output_path: Optional[str],
                    to_stdout: bool = False) -> bool:
    """Render a template and write the result to a file or to stdout"""
    try:
        data = load_data(data_path)
    except (OSError, ValueError) as e:
        print(f"✗ Could not read data: {e}", file=sys.stderr)
        return False

    try:
        document = DocxDocument.open(template_path)
        document.execute_template(data)
    except DocxFillError as e:
        print(f"✗ Render failed: {e}", file=sys.stderr)
        return False

    if to_stdout:
        sys.stdout.buffer.write(document.to_bytes())
        sys.stdout.buffer.flush()
        return True

    output_path = output_path or default_output_path(template_path)
    try:
        document.save(output_path)
    except OSError as e:
        print(f"✗ Could not write {output_path}: {e}", file=sys.stderr)
        return False

    print(f"✓ Rendered: {output_path}")
    return True


def validate_template(template_path: str) -> bool:
    """Print a validation report for a template"""
    print(f"\nValidating template: {template_path}")
    print("=" * 80)

    validator = TemplateValidator()
    result = validator.validate_template(template_path)
    print(validator.get_summary())
    return result['valid']


def serve(host: Optional[str], port: Optional[int]) -> bool:
    from render_service import create_app

    settings = load_settings()
    if host:
        settings.host = host
    if port:
        settings.port = port

    app = create_app(settings)
    print(f"✓ docxfill daemon listening on http://{settings.host}:{settings.port}")
    print(f"  Template root: {settings.template_root}")
    app.run(host=settings.host, port=settings.port)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='docx-fill',
        description='Fill .docx templates with JSON data',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Render a template
  docx-fill render --in contract.docx --data client.json

  # Render to a chosen file, or stream it
  docx-fill render --in contract.docx --data client.json --out signed.docx
  docx-fill render --in contract.docx --data client.json --stdout > signed.docx

  # Check marker syntax
  docx-fill validate contract.docx

  # HTTP daemon
  docx-fill serve --port 8080

Environment:
  DOCXFILL_LOG_LEVEL, DOCXFILL_HOST, DOCXFILL_PORT,
  DOCXFILL_TEMPLATE_ROOT, DOCXFILL_MAX_UPLOAD_MB
        """
    )
    subparsers = parser.add_subparsers(dest='command')

    render = subparsers.add_parser('render', help='Render a template')
    render.add_argument('--in', dest='template', required=True, help='Input .docx template')
    render.add_argument('--data', help="JSON data file ('-' for stdin)")
    render.add_argument('--out', dest='output', help='Output path (default: <template>_out.docx)')
    render.add_argument('--stdout', action='store_true', help='Write the rendered .docx to stdout instead of a file')

    validate = subparsers.add_parser('validate', help='Validate template marker syntax')
    validate.add_argument('template', help='Path to template file')

    daemon = subparsers.add_parser('serve', help='Run the HTTP render daemon')
    daemon.add_argument('--host', help='Bind address (default: DOCXFILL_HOST or 127.0.0.1)')
    daemon.add_argument('--port', type=int, help='Port (default: DOCXFILL_PORT or 8080)')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'render':
        ok = render_template(args.template, args.data, args.output, args.stdout)
    elif args.command == 'validate':
        if not os.path.exists(args.template):
            print(f"✗ File not found: {args.template}", file=sys.stderr)
            return 1
        ok = validate_template(args.template)
    else:
        ok = serve(args.host, args.port)

    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
