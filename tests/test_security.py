"""Tests for environment security checks."""

import pytest

from ginie.model.validation import ValidationError
from ginie.utils.security import security_check


class TestSecurityCheck:
    def test_clean_environment(self, tmp_path, monkeypatch):
        monkeypatch.setattr("os.getuid", lambda: 1000)
        tmp_path.chmod(0o755)
        assert security_check(tmp_path, environ={"HOME": "/home/dev"}) == []

    def test_root_user_warning(self, tmp_path, monkeypatch):
        monkeypatch.setattr("os.getuid", lambda: 0)
        tmp_path.chmod(0o755)
        warnings = security_check(tmp_path, environ={})
        assert any("root" in w for w in warnings)

    def test_secret_variables_warning(self, tmp_path, monkeypatch):
        monkeypatch.setattr("os.getuid", lambda: 1000)
        tmp_path.chmod(0o755)
        warnings = security_check(tmp_path, environ={"AWS_ACCESS_KEY_ID": "x", "DB_PASSWORD": "y", "PATH": "/bin"})
        assert len(warnings) == 1
        assert "AWS_ACCESS_KEY_ID" in warnings[0]
        assert "DB_PASSWORD" in warnings[0]
        assert "PATH" not in warnings[0]

    def test_world_writable_directory(self, tmp_path):
        tmp_path.chmod(0o777)
        with pytest.raises(ValidationError) as exc_info:
            security_check(tmp_path, environ={})
        assert exc_info.value.code == "INSECURE_DIRECTORY"
