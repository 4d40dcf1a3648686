import logging
from typing import List
from fastapi import APIRouter, Depends, Path, Query
from ..schemas.messages import MessageIn, MessageOut, UnreadCountOut
from ..schemas.users import ActionOkOut
from ..crud import ensure_can_exchange, create_message, get_conversation, mark_read, unread_count
from ..auth import get_current_user
from ..config import CONVERSATION_DEFAULT_LIMIT, CONVERSATION_MAX_LIMIT, MAX_ID
from ..core import MESSAGES_SENT
from ..ws_manager import PresenceMap, get_presence

logger = logging.getLogger('famchat')

router = APIRouter()


@router.post('/send', response_model=MessageOut)
async def send(
    payload: MessageIn,
    current_user: dict = Depends(get_current_user),
    presence: PresenceMap = Depends(get_presence),
):
    await ensure_can_exchange(current_user['id'], payload.receiver_id)

    m = await create_message(current_user['id'], payload.receiver_id, payload.encrypted_content, payload.iv)
    MESSAGES_SENT.inc()

    out = MessageOut.model_validate(m)
    delivered = await presence.route_if_present(
        payload.receiver_id,
        {'type': 'new_message', 'message': out.model_dump(mode='json')},
    )
    logger.info({'msg': 'message_sent', 'message_id': m.id, 'sender_id': m.sender_id, 'receiver_id': m.receiver_id, 'live': delivered})
    return out


@router.get('/unread-count', response_model=UnreadCountOut)
async def unread(current_user: dict = Depends(get_current_user)):
    return {'count': await unread_count(current_user['id'])}


@router.get('/conversation/{contact_id}', response_model=List[MessageOut])
async def conversation(
    contact_id: int = Path(ge=1, le=MAX_ID),
    limit: int = Query(CONVERSATION_DEFAULT_LIMIT, ge=1, le=CONVERSATION_MAX_LIMIT),
    current_user: dict = Depends(get_current_user),
):
    await ensure_can_exchange(current_user['id'], contact_id)
    return await get_conversation(current_user['id'], contact_id, limit=limit)


@router.post('/read/{message_id}', response_model=ActionOkOut)
async def read(
    message_id: int = Path(ge=1, le=MAX_ID),
    current_user: dict = Depends(get_current_user),
    presence: PresenceMap = Depends(get_presence),
):
    m = await mark_read(message_id, current_user['id'])
    if m is not None:
        await presence.route_if_present(
            m.sender_id,
            {'type': 'message_read', 'message_id': m.id, 'read_at': m.read_at.isoformat()},
        )
    return {'ok': True, 'message': 'Message marked as read'}
