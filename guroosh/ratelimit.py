# guroosh/ratelimit.py
"""
Per-IP limits on the public auth endpoints.

Sign-in style routes share one counter, the password reset routes share
another, so a client cannot spread guesses at a 6-digit code across
endpoints.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from guroosh.settings import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

auth_limit = limiter.shared_limit(
    settings.auth_rate_limit,
    scope="auth",
    error_message="Too many authentication attempts, please try again in 15 minutes.",
)

password_reset_limit = limiter.shared_limit(
    settings.password_reset_rate_limit,
    scope="password-reset",
    error_message="Too many password reset attempts, please try again in an hour.",
)
