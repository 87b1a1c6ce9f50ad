"""
Shared slowapi limiter.

Routers decorate endpoints with ``@limiter.limit(...)``; main.py registers
the same instance on ``app.state`` together with the 429 handler.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
