import logging
from typing import List
from fastapi import APIRouter, Depends, Path
from ..schemas.contacts import ContactAddIn, ContactAddOut, ContactOut
from ..schemas.users import ActionOkOut
from ..crud import (
    add_contact,
    accept_contact,
    reject_contact,
    remove_contact,
    list_contacts,
    list_pending_requests,
    list_sent_requests,
)
from ..auth import get_current_user
from ..config import MAX_ID

logger = logging.getLogger('famchat')

router = APIRouter()


@router.post('/add', response_model=ContactAddOut)
async def add(payload: ContactAddIn, current_user: dict = Depends(get_current_user)):
    contact_id = await add_contact(current_user['id'], payload.username)
    logger.info({'msg': 'contact_requested', 'user_id': current_user['id'], 'contact_id': contact_id})
    return {'contact_id': contact_id}


@router.post('/accept/{requester_id}', response_model=ActionOkOut)
async def accept(requester_id: int = Path(ge=1, le=MAX_ID), current_user: dict = Depends(get_current_user)):
    await accept_contact(current_user['id'], requester_id)
    logger.info({'msg': 'contact_accepted', 'user_id': current_user['id'], 'requester_id': requester_id})
    return {'ok': True, 'message': 'Contact request accepted'}


@router.post('/reject/{requester_id}', response_model=ActionOkOut)
async def reject(requester_id: int = Path(ge=1, le=MAX_ID), current_user: dict = Depends(get_current_user)):
    await reject_contact(current_user['id'], requester_id)
    logger.info({'msg': 'contact_rejected', 'user_id': current_user['id'], 'requester_id': requester_id})
    return {'ok': True, 'message': 'Contact request rejected'}


@router.delete('/remove/{contact_id}', response_model=ActionOkOut)
async def remove(contact_id: int = Path(ge=1, le=MAX_ID), current_user: dict = Depends(get_current_user)):
    await remove_contact(current_user['id'], contact_id)
    logger.info({'msg': 'contact_removed', 'user_id': current_user['id'], 'contact_id': contact_id})
    return {'ok': True, 'message': 'Contact removed'}


@router.get('/list', response_model=List[ContactOut])
async def contacts(current_user: dict = Depends(get_current_user)):
    return await list_contacts(current_user['id'])


@router.get('/pending', response_model=List[ContactOut])
async def pending(current_user: dict = Depends(get_current_user)):
    return await list_pending_requests(current_user['id'])


@router.get('/sent', response_model=List[ContactOut])
async def sent(current_user: dict = Depends(get_current_user)):
    return await list_sent_requests(current_user['id'])
