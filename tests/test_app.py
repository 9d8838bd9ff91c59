"""Tests for BrandAuditApp component wiring."""

import logging
from unittest.mock import MagicMock, patch

from brand_audit.app import BrandAuditApp


class TestLLMClientWiring:

    def test_unconfigured_client_is_checked_once(self, caplog):
        unconfigured = MagicMock(is_configured=False)
        brand_app = BrandAuditApp()

        with patch("brand_audit.integrations.llm_client.LLMClient", return_value=unconfigured) as factory:
            with caplog.at_level(logging.WARNING, logger="brand_audit.app"):
                assert brand_app.get_llm_client() is None
                assert brand_app.get_llm_client() is None

        factory.assert_called_once()
        warnings = [r for r in caplog.records if "No LLM provider key" in r.getMessage()]
        assert len(warnings) == 1

    def test_configured_client_is_reused(self):
        configured = MagicMock(is_configured=True)
        brand_app = BrandAuditApp()

        with patch("brand_audit.integrations.llm_client.LLMClient", return_value=configured) as factory:
            first = brand_app.get_llm_client()
            second = brand_app.get_llm_client()

        assert first is configured
        assert second is configured
        factory.assert_called_once()
