"""
Middleware package for Starbyte.
"""
from .star_session import (
    StarSession,
    require_star_session,
    issue_session_token,
    decode_session_token,
)
