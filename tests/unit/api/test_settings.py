"""Tests for api/settings module."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from api.settings import Settings


class TestGraphSettings:
    """Tests for network graph settings."""

    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.graph_random_seed == 42
        assert settings.graph_jitter_spread == 0.15

    def test_seed_from_environment(self):
        with patch.dict("os.environ", {"GRAPH_RANDOM_SEED": "7"}, clear=True):
            assert Settings(_env_file=None).graph_random_seed == 7

    @pytest.mark.parametrize("spread", ["-0.1", "0.5", "2"])
    def test_invalid_jitter_spread(self, spread):
        with patch.dict("os.environ", {"GRAPH_JITTER_SPREAD": spread}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestAllowedOrigins:
    """Tests for the comma-separated CORS origins."""

    def test_parses_and_strips(self):
        with patch.dict("os.environ", {"ALLOWED_ORIGINS": "http://a.test, http://b.test ,"}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.allowed_origins == ["http://a.test", "http://b.test"]


class TestAdminPassword:
    def test_insecure_password_warns(self, caplog):
        with patch.dict("os.environ", {"POCKETBASE_ADMIN_PASSWORD": "admin"}, clear=True):
            Settings(_env_file=None)

        assert "SECURITY WARNING" in caplog.text

    def test_strong_password_is_quiet(self, caplog):
        with patch.dict("os.environ", {"POCKETBASE_ADMIN_PASSWORD": "a-long-unique-secret"}, clear=True):
            Settings(_env_file=None)

        assert "SECURITY WARNING" not in caplog.text
