"""
Exception classes for the receptionist service.
"""


class ReceptionistException(Exception):
    """Base exception for all receptionist errors."""
    pass


class SessionNotFound(ReceptionistException):
    """Raised when no live session exists for a call id (expired or terminated)."""

    def __init__(self, call_id: str):
        super().__init__(f"No active session for call {call_id}")
        self.call_id = call_id


class ClientConfigNotFound(ReceptionistException):
    """Raised when a client id has no business configuration."""

    def __init__(self, client_id: str):
        super().__init__(f"No configuration for client {client_id}")
        self.client_id = client_id


class CompletionFailed(ReceptionistException):
    """Raised when the completion engine times out, errors or returns nothing."""
    pass


class LogWriteFailed(ReceptionistException):
    """Raised when a call record could not be written to the call log."""
    pass


class IllegalTransition(ReceptionistException):
    """Raised when an event is not accepted in the session's current state."""

    def __init__(self, call_id: str, state: str, event: str):
        super().__init__(f"Event {event} not allowed in state {state} for call {call_id}")
        self.call_id = call_id
        self.state = state
        self.event = event
