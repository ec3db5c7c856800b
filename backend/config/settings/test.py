"""
Test settings: in-memory SQLite, no network, no pacing delay.

Usage:
    pytest                                  (pyproject.toml selects this module)
    DJANGO_SETTINGS_MODULE=config.settings.test python manage.py test apps
"""
from .base import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver', 'localhost']

ANTHROPIC_API_KEY = 'test-anthropic-key'
OPENAI_API_KEY = 'test-openai-key'
ETHERSCAN_API_KEY = 'test-etherscan-key'

AUDIT_FINDING_DELAY_SECONDS = 0.0
X402_ENABLED = False
X402_FACILITATOR_URL = ''
