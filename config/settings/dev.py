"""Development settings.

Extends the base settings with debug mode.
Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']
