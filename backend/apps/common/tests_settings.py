"""
Tests for the environment-driven settings module
"""
import importlib
import os
from unittest.mock import patch

from django.test import SimpleTestCase

from apps.audits.middleware import price_to_atomic_units


class BaseSettingsTest(SimpleTestCase):
    """Load config.settings.base against a bare environment"""

    def load_base(self, **env):
        with patch.dict(os.environ, env):
            for key in ('X402_PRICE', 'X402_ENABLED', 'AUDIT_MAX_FINDINGS'):
                if key not in env:
                    os.environ.pop(key, None)
            module = importlib.import_module('config.settings.base')
            return importlib.reload(module)

    def test_defaults_load_without_overrides(self):
        base = self.load_base()
        self.assertEqual(base.X402_PRICE, '0.50')
        self.assertEqual(price_to_atomic_units(base.X402_PRICE), '500000')
        self.assertFalse(base.X402_ENABLED)
        self.assertEqual(base.AUDIT_MAX_FINDINGS, 50)

    def test_price_override(self):
        base = self.load_base(X402_PRICE='1.25')
        self.assertEqual(price_to_atomic_units(base.X402_PRICE), '1250000')
