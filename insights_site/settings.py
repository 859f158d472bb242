"""
Django settings for the GitHub insights service.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'insecure-dev-key-change-me')

DEBUG = os.environ.get('DJANGO_DEBUG', '0') == '1'

ALLOWED_HOSTS = [host for host in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if host]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'insights.apps.InsightsConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'insights_site.urls'

WSGI_APPLICATION = 'insights_site.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'github-insights',
    }
}

USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# GitHub API
GITHUB_TOKEN = os.environ.get('GITHUB_TOKEN') or None
GITHUB_CACHE_TIMEOUT = int(os.environ.get('GITHUB_CACHE_TIMEOUT', '1800'))

# Insight cards
INSIGHTS_REQUEST_TIMEOUT = float(os.environ.get('INSIGHTS_REQUEST_TIMEOUT', '10'))
INSIGHTS_MAX_REPO_PAGES = int(os.environ.get('INSIGHTS_MAX_REPO_PAGES', '10'))
INSIGHTS_BASE_URL = os.environ.get('INSIGHTS_BASE_URL') or None
INSIGHTS_DEFAULT_THEME = os.environ.get('INSIGHTS_DEFAULT_THEME', 'dark')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'insights': {
            'handlers': ['console'],
            'level': os.environ.get('INSIGHTS_LOG_LEVEL', 'INFO'),
        },
    },
}
