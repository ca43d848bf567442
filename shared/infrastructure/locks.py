"""
Cache backed mutual exclusion.

``cache.add`` only stores a key that is absent, which makes it a usable
cross-process lock on Redis and on the local memory cache alike.
"""

import logging
from contextlib import contextmanager
from uuid import uuid4

from django.core.cache import cache

logger = logging.getLogger(__name__)


class LockHeld(Exception):
    """Another worker already owns the lock"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Lock {key} is already held")


@contextmanager
def cache_lock(key: str, timeout: int):
    """
    Hold ``key`` for the duration of the block.

    The lock expires on its own after ``timeout`` seconds so a crashed worker
    cannot wedge it. Only the owner token releases it.
    """
    token = uuid4().hex
    if not cache.add(key, token, timeout):
        raise LockHeld(key)
    logger.debug(f"Acquired lock {key}")
    try:
        yield token
    finally:
        if cache.get(key) == token:
            cache.delete(key)
            logger.debug(f"Released lock {key}")
