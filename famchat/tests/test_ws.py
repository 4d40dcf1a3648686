import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from famchat.auth import issue_token
from famchat.errors import ValidationError
from famchat.main import create_app


def test_authenticate_registers_presence():
    app = create_app()
    presence = app.state.presence
    client = TestClient(app)
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_json({'type': 'authenticate', 'token': issue_token(5, 'eve')})
        assert ws.receive_json() == {'type': 'authenticated', 'user_id': 5}
        assert presence.users.get(5) is not None
    assert presence.users == {}
    assert presence.connections == {}


def test_bad_token_closes_socket():
    client = TestClient(create_app())
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_json({'type': 'authenticate', 'token': 'garbage'})
        frame = ws.receive_json()
        assert frame['type'] == 'error'
        assert frame['error'] == 'InvalidSession'
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
        assert exc.value.code == 1008


def test_events_require_authentication():
    client = TestClient(create_app())
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_json({'type': 'typing', 'receiver_id': 2, 'is_typing': True})
        frame = ws.receive_json()
        assert frame == {'type': 'error', 'error': 'Unauthenticated', 'detail': 'Authenticate first'}


def test_unknown_event_reported():
    client = TestClient(create_app())
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_json({'type': 'authenticate', 'token': issue_token(5, 'eve')})
        ws.receive_json()
        ws.send_json({'type': 'dance'})
        frame = ws.receive_json()
        assert frame['type'] == 'error'
        assert frame['error'] == 'ValidationError'


def test_non_string_token_closes_socket():
    client = TestClient(create_app())
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_json({'type': 'authenticate', 'token': 12345})
        frame = ws.receive_json()
        assert frame['type'] == 'error'
        assert frame['error'] == 'InvalidSession'
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
        assert exc.value.code == 1008


def test_malformed_frame_keeps_socket_open():
    app = create_app()
    client = TestClient(app)
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_text('not json')
        frame = ws.receive_json()
        assert frame['type'] == 'error'
        assert frame['error'] == ValidationError.kind
        ws.send_json({'type': 'authenticate', 'token': issue_token(5, 'eve')})
        assert ws.receive_json() == {'type': 'authenticated', 'user_id': 5}
        assert 5 in app.state.presence.users


def test_non_object_frame_reported():
    client = TestClient(create_app())
    with client.websocket_connect('/api/ws/chat') as ws:
        ws.send_json(['authenticate'])
        frame = ws.receive_json()
        assert frame == {'type': 'error', 'error': 'Unauthenticated', 'detail': 'Authenticate first'}
