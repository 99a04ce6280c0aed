"""
PURPOSE: Rate limiting configuration for the EA Builder API using slowapi.

Provides a shared Limiter instance keyed by client IP address and
pre-defined rate limit strings for different endpoint categories:
    - GENERATE_LIMIT: moderate (30/minute) for EA generation
    - READ_LIMIT:     relaxed  (60/minute) for parameter detection
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared limiter instance keyed by client IP
limiter = Limiter(key_func=get_remote_address)

# ── Rate limit tiers ──────────────────────────────────────────
GENERATE_LIMIT = "30/minute"
READ_LIMIT = "60/minute"
