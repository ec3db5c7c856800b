"""
ASGI config for the contract auditor.

Serves the analysis event stream without buffering.

    Start with: uvicorn config.asgi:application --reload
"""
import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

application = get_asgi_application()
