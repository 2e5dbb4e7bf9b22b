from utilities.constants import MSG_VIEWER_COUNT, MSG_ERROR, MSG_PING

# Server -> client messages are built as dicts
def make_viewer_count(count: int):
    return {"type": MSG_VIEWER_COUNT, "count": count}

def make_error(message: str):
    return {"type": MSG_ERROR, "message": message}

def make_ping():
    # liveness frame; artist and viewer pages ignore types they do not handle
    return {"type": MSG_PING}
