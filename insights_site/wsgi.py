"""
WSGI config for the insights site.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'insights_site.settings')

application = get_wsgi_application()
