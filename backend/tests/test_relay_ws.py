"""
End-to-end websocket scenarios through the FastAPI test client.
"""

from contextlib import ExitStack

import pytest
from starlette.websockets import WebSocketDisconnect


def register(ws, role):
    ws.send_json({"type": "register", "role": role})


def count(n):
    return {"type": "viewer_count", "count": n}


@pytest.mark.e2e
def test_exhibition_scenario(client):
    with client.websocket_connect("/") as a:
        register(a, "artist")
        assert a.receive_json() == count(0)

        with client.websocket_connect("/") as b:
            register(b, "viewer")
            assert a.receive_json() == count(1)

            with client.websocket_connect("/ws") as c:
                register(c, "viewer")
                assert a.receive_json() == count(2)

                b.send_json({"type": "button_click", "button": "x"})
                assert a.receive_json() == {"type": "button_click", "button": "x"}

                a.send_json({"type": "camera_status", "status": "on"})
                # the click never reached the viewers
                assert b.receive_json() == {"type": "camera_status", "status": "on"}
                assert c.receive_json() == {"type": "camera_status", "status": "on"}

            # the camera status never reached the artist
            assert a.receive_json() == count(1)


@pytest.mark.e2e
def test_viewer_over_capacity_is_rejected(client):
    with ExitStack() as stack:
        artist = stack.enter_context(client.websocket_connect("/ws"))
        register(artist, "artist")
        assert artist.receive_json() == count(0)

        viewers = []
        for n in range(1, 4):
            ws = stack.enter_context(client.websocket_connect("/ws"))
            register(ws, "viewer")
            assert artist.receive_json() == count(n)
            viewers.append(ws)

        with client.websocket_connect("/ws") as late:
            register(late, "viewer")
            assert late.receive_json() == {
                "type": "error",
                "message": "최대 인원(3명)에 도달했습니다.",
            }
            with pytest.raises(WebSocketDisconnect):
                late.receive_json()

        # earlier viewers are still wired up
        artist.send_json({"type": "camera_status", "status": "off"})
        for ws in viewers:
            assert ws.receive_json() == {"type": "camera_status", "status": "off"}
        assert client.app.state.registry.subscriber_count() == 3


@pytest.mark.e2e
def test_second_artist_evicts_first(client):
    with client.websocket_connect("/ws") as first:
        register(first, "artist")
        assert first.receive_json() == count(0)

        with client.websocket_connect("/ws") as second:
            register(second, "artist")
            assert second.receive_json() == count(0)
            with pytest.raises(WebSocketDisconnect):
                first.receive_json()

            with client.websocket_connect("/ws") as viewer:
                register(viewer, "viewer")
                assert second.receive_json() == count(1)
                assert client.app.state.registry.current_publisher() is not None


@pytest.mark.e2e
def test_malformed_frames_do_not_close_connection(client):
    with client.websocket_connect("/ws") as artist:
        register(artist, "artist")
        assert artist.receive_json() == count(0)

        with client.websocket_connect("/ws") as viewer:
            register(viewer, "viewer")
            assert artist.receive_json() == count(1)

            viewer.send_text("{not json")
            viewer.send_text('{"button": "missing type"}')
            viewer.send_json({"type": "button_click", "button": "ok"})

            assert artist.receive_json() == {"type": "button_click", "button": "ok"}


@pytest.mark.e2e
def test_binary_frames_are_decoded(client):
    with client.websocket_connect("/ws") as artist:
        register(artist, "artist")
        assert artist.receive_json() == count(0)

        with client.websocket_connect("/ws") as viewer:
            viewer.send_json({"type": "register", "role": "viewer"}, mode="binary")
            assert artist.receive_json() == count(1)


@pytest.mark.e2e
def test_unregistered_and_re_registered_senders(client):
    with client.websocket_connect("/ws") as artist:
        register(artist, "artist")
        assert artist.receive_json() == count(0)

        with client.websocket_connect("/ws") as stranger:
            stranger.send_json({"type": "button_click", "button": "ghost"})

            with client.websocket_connect("/ws") as viewer:
                register(viewer, "viewer")
                assert artist.receive_json() == count(1)

                # a viewer cannot promote itself
                register(viewer, "artist")
                viewer.send_json({"type": "button_click", "button": "real"})
                assert artist.receive_json() == {"type": "button_click", "button": "real"}

                registry = client.app.state.registry
                assert registry.subscriber_count() == 1


@pytest.mark.e2e
def test_shutdown_closes_everyone(settings):
    from fastapi.testclient import TestClient
    from main import create_app

    app = create_app(settings)
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as artist:
            register(artist, "artist")
            assert artist.receive_json() == count(0)
            registry = app.state.registry
            client.portal.call(registry.close_all)
            with pytest.raises(WebSocketDisconnect) as excinfo:
                artist.receive_json()
            assert excinfo.value.code == 1001
            assert registry.current_publisher() is None
