"""
Star session token authentication.

Requests carry an HS256 bearer token whose claims describe the signed-in
star:
- sub:          Star ID
- email:        Star email
- star_name:    Unique handle
- display_name: Display name
- avatar, bio:  Optional profile fields
- exp:          Expiration time

The decoded claims become an immutable StarSession snapshot that is passed
to the view as the `session` keyword argument. Nothing about the current
star is stored on globals.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import request, current_app

from ..schemas import StarLite
from ..utils.errors import unauthorized, ErrorCode
from ..utils.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = 'HS256'


@dataclass(frozen=True)
class StarSession:
    """The signed-in star for one request."""
    star_id: str
    email: Optional[str] = None
    star_name: Optional[str] = None
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> 'StarSession':
        star_id = claims.get('sub')
        if not star_id:
            raise AuthorizationError('Session token has no subject')
        return cls(
            star_id=str(star_id),
            email=claims.get('email'),
            star_name=claims.get('star_name'),
            display_name=claims.get('display_name'),
            avatar=claims.get('avatar'),
            bio=claims.get('bio'),
        )

    def to_lite(self) -> StarLite:
        return StarLite(
            star_name=self.star_name,
            display_name=self.display_name,
            email=self.email,
            avatar=self.avatar,
            bio=self.bio,
        )


def issue_session_token(session: StarSession, secret: str, expires_in: int = 3600) -> str:
    """Sign a session token for a star."""
    now = datetime.now(timezone.utc)
    claims = {
        'sub': session.star_id,
        'email': session.email,
        'star_name': session.star_name,
        'display_name': session.display_name,
        'avatar': session.avatar,
        'bio': session.bio,
        'iat': now,
        'exp': now + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)


def decode_session_token(token: str, secret: str) -> Optional[StarSession]:
    """
    Decode and verify a session token.

    Returns:
        StarSession or None if the token is invalid or expired
    """
    if not token:
        return None

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            options={'verify_exp': True, 'require': ['sub', 'exp']},
        )
    except jwt.ExpiredSignatureError:
        logger.info('Session token expired')
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f'Invalid session token: {e}')
        return None

    try:
        return StarSession.from_claims(claims)
    except AuthorizationError:
        return None


def require_star_session(f):
    """
    Decorator for routes that need a signed-in star.

    Injects the StarSession as the `session` keyword argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return unauthorized('Authentication required', ErrorCode.AUTH_REQUIRED)

        token = auth_header.split(' ', 1)[1].strip()
        session = decode_session_token(token, current_app.config['SESSION_SECRET'])
        if session is None:
            return unauthorized('Invalid or expired session token', ErrorCode.INVALID_TOKEN)

        kwargs['session'] = session
        return f(*args, **kwargs)

    return decorated_function
