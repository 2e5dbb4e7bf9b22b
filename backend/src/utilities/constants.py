# ------------ Config ------------
MAX_VIEWERS = 50              # concurrent viewer connections
PING_INTERVAL = 30            # seconds between liveness pings
SEND_QUEUE_SIZE = 50          # bounded per-connection outbound queue
CLOSE_TIMEOUT = 5             # seconds a closing connection gets to flush
# --------------------------------

# ------------ Roles ------------
ROLE_ARTIST = "artist"
ROLE_VIEWER = "viewer"
ROLE_UNASSIGNED = "unassigned"
ROLE_RETIRED = "retired"
# -------------------------------

# ------------ Message types ------------
MSG_REGISTER = "register"
MSG_BUTTON_CLICK = "button_click"
MSG_CAMERA_STATUS = "camera_status"
MSG_VIEWER_COUNT = "viewer_count"
MSG_ERROR = "error"
MSG_PING = "ping"
# ---------------------------------------

CAPACITY_EXCEEDED_MESSAGE = "최대 인원({limit}명)에 도달했습니다."

# ------------ Static files ------------
MIME_TYPES = {
    ".html": "text/html",
    ".js": "text/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".woff": "application/font-woff",
    ".ttf": "application/font-ttf",
    ".eot": "application/vnd.ms-fontobject",
    ".otf": "application/font-otf",
    ".wasm": "application/wasm",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"
INDEX_FILE = "index.html"
NOT_FOUND_BODY = "<h1>404 - 페이지를 찾을 수 없습니다</h1>"
# --------------------------------------
