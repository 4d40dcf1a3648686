import json
import logging
import uuid
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from ..auth import verify_token
from ..config import MAX_ID
from ..crud import can_exchange
from ..errors import InvalidSession, Unauthenticated, ValidationError

logger = logging.getLogger('famchat')

router = APIRouter()


def _error_frame(exc):
    return {'type': 'error', 'error': exc.kind, 'detail': exc.message}


@router.websocket('/chat')
async def chat_ws(websocket: WebSocket):
    presence = websocket.app.state.presence
    connection_id = uuid.uuid4().hex
    user_id = None
    await websocket.accept()
    await presence.attach(connection_id, websocket)
    logger.info({'msg': 'ws_connected', 'connection_id': connection_id})
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                await websocket.send_json(_error_frame(ValidationError('Frame is not valid JSON')))
                continue
            event = data.get('type') if isinstance(data, dict) else None

            if event == 'authenticate':
                try:
                    claim = verify_token(data.get('token'))
                except InvalidSession as e:
                    await websocket.send_json(_error_frame(e))
                    await websocket.close(code=1008)
                    break
                user_id = claim['id']
                await presence.register(user_id, connection_id)
                await websocket.send_json({'type': 'authenticated', 'user_id': user_id})
                logger.info({'msg': 'ws_authenticated', 'connection_id': connection_id, 'user_id': user_id})

            elif user_id is None:
                await websocket.send_json(_error_frame(Unauthenticated('Authenticate first')))

            elif event == 'typing':
                receiver_id = data.get('receiver_id')
                if isinstance(receiver_id, int) and 0 < receiver_id <= MAX_ID and await can_exchange(user_id, receiver_id):
                    await presence.route_if_present(receiver_id, {
                        'type': 'user_typing',
                        'user_id': user_id,
                        'is_typing': bool(data.get('is_typing')),
                    })

            else:
                await websocket.send_json(_error_frame(ValidationError(f'Unknown event {event!r}')))
    except WebSocketDisconnect:
        pass
    finally:
        await presence.unregister(connection_id)
        logger.info({'msg': 'ws_disconnected', 'connection_id': connection_id, 'user_id': user_id})
