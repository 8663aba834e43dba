"""
Production settings for the catalog backend.
"""

import os

from .settings import *  # noqa: F401,F403
from .settings import BASE_DIR, LOGGING

DEBUG = False
CATALOG_EXPOSE_ERROR_DETAIL = False

if 'SECRET_KEY' not in os.environ:
    raise RuntimeError("SECRET_KEY must be set in production")
SECRET_KEY = os.environ['SECRET_KEY']

_csrf_origins_env = os.environ.get('CSRF_TRUSTED_ORIGINS')
if _csrf_origins_env:
    CSRF_TRUSTED_ORIGINS = [o.strip() for o in _csrf_origins_env.split(',') if o.strip()]

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

# Логирование: ротация файлов поверх базовой конфигурации
LOGGING['handlers']['file'] = {
    'level': 'INFO',
    'class': 'logging.handlers.RotatingFileHandler',
    'filename': BASE_DIR / 'django.log',
    'maxBytes': 10 * 1024 * 1024,
    'backupCount': 5,
    'formatter': 'verbose',
}
for _logger in LOGGING['loggers'].values():
    _logger['handlers'] = ['console', 'file']
