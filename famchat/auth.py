from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Request
from jose import jwt, JWTError
from .config import JWT_SECRET, JWT_ALGORITHM, SESSION_TTL_DAYS, SESSION_TRANSPORT, SESSION_COOKIE_NAME
from .errors import InvalidSession, Unauthenticated

SECRET = JWT_SECRET
ALGORITHM = JWT_ALGORITHM
SESSION_TTL = timedelta(days=SESSION_TTL_DAYS)


def issue_token(user_id: int, username: str, issued_at: Optional[datetime] = None) -> str:
    """Mint a signed session claim. Lifetime is fixed at issuance."""
    issued_at = issued_at or datetime.now(timezone.utc)
    claims = {
        'id': user_id,
        'username': username,
        'iat': int(issued_at.timestamp()),
        'exp': int((issued_at + SESSION_TTL).timestamp()),
    }
    return jwt.encode(claims, SECRET, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    if not isinstance(token, str) or not token:
        raise InvalidSession('Missing session token')
    try:
        payload = jwt.decode(token, SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        raise InvalidSession('Invalid or expired session') from e
    user_id = payload.get('id')
    username = payload.get('username')
    # bool is an int subclass
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str) or 'exp' not in payload:
        raise InvalidSession('Malformed session payload')
    return {'id': user_id, 'username': username, 'iat': payload.get('iat'), 'exp': payload['exp']}


def extract_token(request: Request) -> Optional[str]:
    if SESSION_TRANSPORT == 'cookie':
        return request.cookies.get(SESSION_COOKIE_NAME)
    header = request.headers.get('authorization')
    if not header:
        return None
    scheme, _, value = header.partition(' ')
    if scheme.lower() != 'bearer' or not value.strip():
        return None
    return value.strip()


async def get_current_user(request: Request) -> dict:
    token = extract_token(request)
    if not token:
        raise Unauthenticated('Access token required')
    return verify_token(token)
