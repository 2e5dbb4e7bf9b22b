import asyncio
import errno
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from models import Connection, ConnectionRegistry, MessageRouter, DecodeFailure
from schemas import decode_message
from utilities import Settings, get_settings, setup_logging
from utilities import (
    ROLE_ARTIST,
    ROLE_VIEWER,
    ROLE_RETIRED,
    MIME_TYPES,
    DEFAULT_CONTENT_TYPE,
    INDEX_FILE,
    NOT_FOUND_BODY,
)

logger = logging.getLogger(__name__)

# -------------- Connection lifecycle --------------
async def receive_frame(ws: WebSocket) -> Union[str, bytes]:
    """
    Next text or binary frame. Raises WebSocketDisconnect once the peer is gone.
    """
    message = await ws.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    text = message.get("text")
    return text if text is not None else message.get("bytes", b"")

async def teardown(conn: Connection, registry: ConnectionRegistry, router: MessageRouter):
    """
    Release everything a connection holds. Safe to call more than once and
    from both the close and the error path.
    """
    role = conn.role
    if role == ROLE_RETIRED:
        return
    conn.role = ROLE_RETIRED

    if role == ROLE_ARTIST:
        if registry.unregister_publisher(conn):
            logger.info("artist disconnected: %s", conn)
    elif role == ROLE_VIEWER:
        if registry.unregister_subscriber(conn):
            logger.info("viewer left: %s (now %d)", conn, registry.subscriber_count())
            router.notify_viewer_count()

    await conn.retire()
    conn.close()
    await conn.wait_closed()

async def handle_connection(
    ws: WebSocket,
    registry: ConnectionRegistry,
    router: MessageRouter,
    ping_interval: float,
):
    await ws.accept()
    conn = Connection(ws)
    logger.info("new connection: %s", conn)
    conn.start_liveness(ping_interval)
    try:
        # stops as soon as the hub itself closes the connection
        while not conn.closed:
            raw = await receive_frame(ws)
            if conn.closed:
                break
            try:
                envelope = decode_message(raw)
            except DecodeFailure as exc:
                logger.warning("dropping malformed message from %s: %s", conn, exc)
                continue
            router.route(conn, envelope)
    except WebSocketDisconnect:
        logger.info("connection closed: %s", conn)
    except Exception:
        logger.exception("websocket error on %s", conn)
    finally:
        # the ASGI server may cancel this task on disconnect
        await asyncio.shield(teardown(conn, registry, router))

# -------------- Static files --------------
def serve_static(root: Path, url_path: str) -> Response:
    """
    Map a request path onto a file below ``root``.
    """
    relative = url_path.lstrip("/") or INDEX_FILE
    target = (root / relative).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        return HTMLResponse(NOT_FOUND_BODY, status_code=404)

    content_type = MIME_TYPES.get(target.suffix.lower(), DEFAULT_CONTENT_TYPE)
    try:
        content = target.read_bytes()
    except FileNotFoundError:
        return HTMLResponse(NOT_FOUND_BODY, status_code=404)
    except OSError as exc:
        code = errno.errorcode.get(exc.errno, str(exc.errno))
        logger.error("failed to read %s: %s", target, exc)
        return PlainTextResponse(f"서버 오류: {code}", status_code=500)
    return Response(content, media_type=content_type)

# -------------- App --------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    static_root = Path(settings.static_dir).resolve()

    # one registry per app, shared by every connection handler
    registry = ConnectionRegistry(max_viewers=settings.max_viewers)
    router = MessageRouter(registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("relay hub starting, max viewers: %d", registry.max_viewers)
        yield
        logger.info("relay hub shutting down...")
        await registry.close_all()

    app = FastAPI(title="Exhibition relay hub", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.router = router
    app.state.started_at = datetime.now(timezone.utc)

    @app.websocket("/")
    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await handle_connection(ws, registry, router, settings.ping_interval)

    @app.get("/health")
    async def rest_health():
        now = datetime.now(timezone.utc)
        uptime_sec = int((now - app.state.started_at).total_seconds())
        return {"status": "ok", "uptime_sec": uptime_sec, **registry.stats()}

    # sync handlers run in the threadpool, file reads stay off the event loop
    @app.get("/")
    def rest_index():
        return serve_static(static_root, INDEX_FILE)

    @app.get("/{path:path}")
    def rest_static(path: str):
        return serve_static(static_root, path)

    return app

app = create_app()

def run():
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    base = f"http://localhost:{settings.port}"
    logger.info("relay hub on port %d", settings.port)
    logger.info("artist page: %s/site-a.html", base)
    logger.info("viewer page: %s/site-b.html", base)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        # protocol level ping frames, invisible to the pages
        ws_ping_interval=settings.ping_interval,
    )

if __name__ == "__main__":
    run()
