"""Rate limiting configuration using slowapi.

Submissions are throttled per caller: the bearer token when one is sent,
otherwise the client IP.
"""

import hashlib

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request


def caller_key(request: Request) -> str:
    """Identify the caller for rate-limit bookkeeping."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return "token:" + hashlib.sha256(auth_header[7:].encode()).hexdigest()[:32]
    return "ip:" + get_remote_address(request)


limiter = Limiter(key_func=caller_key)
