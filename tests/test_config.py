"""
Unit tests for config.py
"""

import os

from config import Settings, load_settings


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch, tmp_path):
        for name in ('DOCXFILL_LOG_LEVEL', 'DOCXFILL_HOST', 'DOCXFILL_PORT',
                     'DOCXFILL_TEMPLATE_ROOT', 'DOCXFILL_MAX_UPLOAD_MB'):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

        settings = load_settings()
        assert settings.log_level == 'INFO'
        assert settings.host == '127.0.0.1'
        assert settings.port == 8080
        assert settings.template_root == os.path.abspath(str(tmp_path))
        assert settings.max_upload_bytes == 16 * 1024 * 1024

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv('DOCXFILL_LOG_LEVEL', 'debug')
        monkeypatch.setenv('DOCXFILL_HOST', '0.0.0.0')
        monkeypatch.setenv('DOCXFILL_PORT', '9000')
        monkeypatch.setenv('DOCXFILL_TEMPLATE_ROOT', str(tmp_path))
        monkeypatch.setenv('DOCXFILL_MAX_UPLOAD_MB', '2')

        settings = load_settings()
        assert settings.log_level == 'DEBUG'
        assert settings.host == '0.0.0.0'
        assert settings.port == 9000
        assert settings.template_root == os.path.abspath(str(tmp_path))
        assert settings.max_upload_bytes == 2 * 1024 * 1024

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv('DOCXFILL_PORT', 'eighty')
        monkeypatch.setenv('DOCXFILL_MAX_UPLOAD_MB', ' ')
        settings = load_settings()
        assert settings.port == 8080
        assert settings.max_upload_mb == 16

    def test_settings_dataclass(self):
        assert Settings(max_upload_mb=1).max_upload_bytes == 1024 * 1024
