"""Shared slowapi limiter, keyed by client address.

``main.create_app`` installs it on ``app.state``; routers decorate their hot
endpoints with ``@limiter.limit(...)``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])
