#!/usr/bin/env python3
"""
Render Service
HTTP daemon that renders .docx templates with JSON data
"""

import base64
import binascii
import io
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request, send_file
from werkzeug.utils import secure_filename

from config import Settings, load_settings
from docx_document import DocxDocument
from errors import DocumentError, DocxFillError, IncludeError
from include_resolver import INCLUDE_EXTENSIONS, safe_join
from template_validator import TemplateValidator

logger = logging.getLogger(__name__)

DOCX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed"""
    return filename.lower().endswith(INCLUDE_EXTENSIONS)


def output_name(template_name: str) -> str:
    return f"{Path(template_name).stem or 'template'}_out.docx"


def _render_response(document: DocxDocument, data: Optional[Dict[str, Any]], template_name: str):
    document.execute_template(data)
    return send_file(
        io.BytesIO(document.to_bytes()),
        mimetype=DOCX_MIMETYPE,
        as_attachment=True,
        download_name=output_name(template_name),
    )


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Build the Flask application"""
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.max_upload_bytes
    app.config['TEMPLATE_ROOT'] = os.path.abspath(settings.template_root)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.route('/api/render', methods=['POST'])
    def render():
        """Render a template named by path under the template root, or sent as base64"""
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({'error': 'JSON object body required'}), 400

        template = payload.get('template')
        data = payload.get('data') or {}
        if not isinstance(template, str) or not template.strip():
            return jsonify({'error': 'template required'}), 400
        if not isinstance(data, dict):
            return jsonify({'error': 'data must be a JSON object'}), 400

        root = app.config['TEMPLATE_ROOT']
        try:
            if allowed_file(template.strip()):
                try:
                    path = safe_join(root, template.strip())
                except IncludeError as e:
                    return jsonify({'error': str(e)}), 400
                if not os.path.isfile(path):
                    return jsonify({'error': f'Template not found: {template}'}), 404
                document = DocxDocument.open(path)
                name = os.path.basename(path)
            else:
                try:
                    content = base64.b64decode(template, validate=True)
                except (binascii.Error, ValueError):
                    return jsonify({'error': 'template is neither a .docx path nor base64 data'}), 400
                document = DocxDocument.from_bytes(content, 'template.docx', include_base=root)
                name = 'template.docx'
        except DocumentError as e:
            return jsonify({'error': str(e)}), 400

        try:
            return _render_response(document, data, name)
        except DocxFillError as e:
            logger.error("Render of %s failed: %s", name, e)
            return jsonify({'error': f'Error rendering template: {str(e)}'}), 500

    @app.route('/api/render/upload', methods=['POST'])
    def render_upload():
        """Render an uploaded template; data comes as a JSON form field"""
        if 'file' not in request.files:
            return jsonify({'error': 'No file provided'}), 400

        file = request.files['file']
        if file.filename == '':
            return jsonify({'error': 'No file selected'}), 400
        if not allowed_file(file.filename):
            return jsonify({'error': 'Invalid file type. Only .docx and .dotx files are allowed'}), 400

        try:
            data = json.loads(request.form.get('data') or '{}')
        except ValueError as e:
            return jsonify({'error': f'Invalid data JSON: {e}'}), 400
        if not isinstance(data, dict):
            return jsonify({'error': 'data must be a JSON object'}), 400

        filename = secure_filename(file.filename)
        try:
            document = DocxDocument.from_bytes(file.read(), filename, include_base=app.config['TEMPLATE_ROOT'])
        except DocumentError as e:
            return jsonify({'error': str(e)}), 400

        try:
            return _render_response(document, data, filename)
        except DocxFillError as e:
            logger.error("Render of %s failed: %s", filename, e)
            return jsonify({'error': f'Error rendering template: {str(e)}'}), 500

    @app.route('/api/validate', methods=['POST'])
    def validate():
        """Validate marker syntax of an uploaded template"""
        if 'file' not in request.files:
            return jsonify({'error': 'No file provided'}), 400

        file = request.files['file']
        if file.filename == '' or not allowed_file(file.filename):
            return jsonify({'error': 'Invalid file type. Only .docx and .dotx files are allowed'}), 400

        validator = TemplateValidator()
        result = validator.validate_bytes(file.read(), secure_filename(file.filename))
        result['summary'] = validator.get_summary()
        return jsonify(result)

    return app
