from utilities.constants import *  # noqa: F401,F403
from utilities.utility_functions import make_viewer_count, make_error, make_ping
from utilities.settings import Settings, get_settings
from utilities.logging_config import setup_logging
