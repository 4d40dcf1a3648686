import logging
from fastapi import APIRouter, Depends, Response
from ..schemas.users import RegisterIn, LoginIn, TokenOut, ActionOkOut
from ..crud import create_user, authenticate_user, sanitize
from ..auth import issue_token, get_current_user, SESSION_TTL
from ..config import SESSION_TRANSPORT, SESSION_COOKIE_NAME, COOKIE_SECURE
from ..errors import Unauthenticated

logger = logging.getLogger('famchat')

router = APIRouter()


def _set_session_cookie(response: Response, token: str):
    if SESSION_TRANSPORT != 'cookie':
        return
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=int(SESSION_TTL.total_seconds()),
        httponly=True,
        secure=COOKIE_SECURE,
        samesite='strict',
    )


@router.post('/register', response_model=TokenOut, status_code=201)
async def register(payload: RegisterIn, response: Response):
    user = await create_user(payload)
    token = issue_token(user.id, user.username)
    _set_session_cookie(response, token)
    logger.info({'msg': 'user_registered', 'user_id': user.id})
    return {'access_token': token, 'token_type': 'bearer', 'user': sanitize(user)}


@router.post('/login', response_model=TokenOut)
async def login(payload: LoginIn, response: Response):
    token = await authenticate_user(payload.username, payload.password)
    if not token:
        logger.info({'msg': 'login_failed'})
        raise Unauthenticated('Invalid credentials')
    _set_session_cookie(response, token['access_token'])
    logger.info({'msg': 'user_logged_in', 'user_id': token['user']['id']})
    return token


@router.post('/logout', response_model=ActionOkOut)
async def logout(response: Response, current_user: dict = Depends(get_current_user)):
    # no server-side revocation; the client copy is dropped
    if SESSION_TRANSPORT == 'cookie':
        response.delete_cookie(SESSION_COOKIE_NAME, httponly=True, secure=COOKIE_SECURE, samesite='strict')
    logger.info({'msg': 'user_logged_out', 'user_id': current_user['id']})
    return {'ok': True, 'message': 'Logged out successfully'}
