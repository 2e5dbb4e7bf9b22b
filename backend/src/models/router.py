import logging

from models.errors import CapacityExceeded
from models.models import Connection, ConnectionRegistry
from utilities import make_viewer_count, make_error
from utilities import (
    CAPACITY_EXCEEDED_MESSAGE,
    MSG_REGISTER,
    MSG_BUTTON_CLICK,
    MSG_CAMERA_STATUS,
    ROLE_ARTIST,
    ROLE_VIEWER,
    ROLE_UNASSIGNED,
)

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Decides where each decoded inbound message goes.

    Routing is gated on the sender's role tag:
      - register            -> assign artist / viewer role
      - button_click        viewer -> artist only (fan-in)
      - camera_status       artist -> every viewer (fan-out)
    Anything else is dropped silently.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def route(self, conn: Connection, envelope):
        typ = envelope.type

        if typ == MSG_REGISTER:
            self.register(conn, envelope.role)
            return

        if typ == MSG_BUTTON_CLICK and conn.role == ROLE_VIEWER:
            logger.debug("button click from %s: %r", conn, envelope.button)
            artist = self.registry.current_publisher()
            if artist is not None:
                artist.send(envelope.to_wire())
            return

        if typ == MSG_CAMERA_STATUS and conn.role == ROLE_ARTIST:
            logger.debug("camera status from %s: %r", conn, envelope.status)
            self.broadcast(envelope.to_wire())
            return

        logger.debug("ignoring %r from %s", typ, conn)

    def register(self, conn: Connection, role):
        if conn.role != ROLE_UNASSIGNED:
            # role is fixed once assigned
            logger.debug("ignoring re-register of %s as %r", conn, role)
            return

        if not isinstance(role, str):
            logger.debug("non-string role %r from %s", role, conn)
            return

        if role == ROLE_ARTIST:
            conn.role = ROLE_ARTIST
            self.registry.register_publisher(conn)
            logger.info("artist connected: %s", conn)
            conn.send(make_viewer_count(self.registry.subscriber_count()))
            return

        if role == ROLE_VIEWER:
            try:
                self.registry.register_subscriber(conn)
            except CapacityExceeded:
                logger.warning("viewer limit reached, rejecting %s", conn)
                notice = CAPACITY_EXCEEDED_MESSAGE.format(limit=self.registry.max_viewers)
                conn.send(make_error(notice))
                conn.close()
                return
            conn.role = ROLE_VIEWER
            logger.info("viewer connected: %s (now %d)", conn, self.registry.subscriber_count())
            self.notify_viewer_count()
            return

        logger.debug("unknown role %r from %s", role, conn)

    def broadcast(self, message: dict) -> int:
        # queued per viewer, a slow viewer never holds up the others;
        # unsendable viewers are skipped
        delivered = 0
        for viewer in self.registry.viewers():
            if viewer.send(message):
                delivered += 1
        return delivered

    def notify_viewer_count(self) -> bool:
        artist = self.registry.current_publisher()
        if artist is None:
            return False
        return artist.send(make_viewer_count(self.registry.subscriber_count()))
