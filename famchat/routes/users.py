import logging
from fastapi import APIRouter, Depends
from ..schemas.users import UserOut, PublicKeyIn
from ..crud import get_user_by_id, update_public_key
from ..auth import get_current_user
from ..errors import NotFound

logger = logging.getLogger('famchat')

router = APIRouter()


@router.get('/me', response_model=UserOut)
async def me(current_user: dict = Depends(get_current_user)):
    user = await get_user_by_id(current_user['id'])
    if not user:
        raise NotFound('User not found')
    return user


@router.put('/me/public-key', response_model=UserOut)
async def set_public_key(payload: PublicKeyIn, current_user: dict = Depends(get_current_user)):
    user = await update_public_key(current_user['id'], payload.public_key)
    if not user:
        raise NotFound('User not found')
    logger.info({'msg': 'public_key_updated', 'user_id': user.id})
    return user
