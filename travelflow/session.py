import enum
import logging

logger = logging.getLogger("travelflow")


class SessionClosed(RuntimeError):
    """Raised when a signed-out session is used."""


class SessionState(str, enum.Enum):
    INIT = "init"
    ACTIVE = "active"
    CLOSED = "closed"


class UserSession:
    """The signed-in identity a TripRepository works for.

    Lifecycle: init (created on sign-in) -> active -> closed (sign-out).
    """

    def __init__(self, user_id: str | None):
        self.user_id = user_id or None
        self.state = SessionState.INIT

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def activate(self) -> None:
        if self.state == SessionState.CLOSED:
            raise SessionClosed("Session has been closed")
        self.state = SessionState.ACTIVE

    def close(self) -> None:
        if self.state != SessionState.CLOSED:
            logger.info("Session closed", extra={"extra_data": {"user_id": self.user_id}})
        self.state = SessionState.CLOSED
