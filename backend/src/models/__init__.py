from models.errors import RelayError, CapacityExceeded, DecodeFailure
from models.models import Connection, ConnectionRegistry
from models.router import MessageRouter
