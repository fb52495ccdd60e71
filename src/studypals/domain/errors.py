"""Domain error types."""


class DeserializationError(ValueError):
    """
    Raised when a JSON payload cannot be decoded into a domain record.

    Attributes:
        record: Name of the record that failed to decode (e.g. "StudyAnalytics").
        detail: Human-readable description of what was missing or malformed.
    """

    def __init__(self, record: str, detail: str):
        self.record = record
        self.detail = detail
        super().__init__(f"Could not decode {record}: {detail}")


class SessionNotFoundError(LookupError):
    """Raised when a study session id is unknown for the given user."""

    def __init__(self, user_id: str, session_id: str):
        self.user_id = user_id
        self.session_id = session_id
        super().__init__(f"No study session '{session_id}' for user '{user_id}'")
