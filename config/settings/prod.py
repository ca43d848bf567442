"""Production settings.

Sensitive values must come from the environment. The cache has to be Redis
here so the reconcile lock and token cache are shared by every worker.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)
ENCRYPTION_KEY = get_env('ENCRYPTION_KEY', required=True)
GOOGLE_CLIENT_ID = get_env('GOOGLE_CLIENT_ID', required=True)
GOOGLE_CLIENT_SECRET = get_env('GOOGLE_CLIENT_SECRET', required=True)

ALLOWED_HOSTS = [host.strip() for host in get_env('DJANGO_ALLOWED_HOSTS', '').split(',') if host.strip()]

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.redis.RedisCache',
        'LOCATION': get_env('REDIS_CACHE_URL', required=True),
    }
}

CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True
