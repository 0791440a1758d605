"""Call session errors."""


class CallSessionError(Exception):
    """Base class for call session errors."""


class SessionNotFoundError(CallSessionError):
    """No session is registered under the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Call session '{session_id}' not found")
        self.session_id = session_id


class SessionEndedError(CallSessionError):
    """The operation needs a live call but the session has ended."""

    def __init__(self, session_id: str):
        super().__init__(f"Call session '{session_id}' has ended")
        self.session_id = session_id


class NotAParticipantError(CallSessionError):
    """The user is neither the initiator nor the receiver of the call."""

    def __init__(self, session_id: str, user_id: str):
        super().__init__(f"User '{user_id}' is not a participant of call '{session_id}'")
        self.session_id = session_id
        self.user_id = user_id


class InvalidParticipantsError(CallSessionError):
    """A call needs two distinct participants."""


class NotTeachingError(CallSessionError):
    """Teaching aids are only available to the participant currently teaching."""

    def __init__(self, user_id: str):
        super().__init__(f"User '{user_id}' is not in Teaching mode")
        self.user_id = user_id


class ParticipantNotReadyError(CallSessionError):
    """A participant has not joined with working camera and microphone yet."""

    def __init__(self, session_id: str, user_id: str):
        super().__init__(
            f"User '{user_id}' has not joined call '{session_id}' with camera and microphone yet"
        )
        self.session_id = session_id
        self.user_id = user_id


class ExtensionUnavailableError(CallSessionError):
    """The extension gate has not opened yet."""


class MediaPermissionDeniedError(CallSessionError):
    """Camera or microphone access was refused."""

    def __init__(self, user_id: str, missing: list):
        devices = " and ".join(missing)
        super().__init__(
            f"Camera Access Failed: {devices} access was denied. "
            f"Please allow camera and microphone access in your browser settings and try again."
        )
        self.user_id = user_id
        self.missing = missing
