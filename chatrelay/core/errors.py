"""Domain errors raised by services and translated to HTTP responses in main."""


class ChatRelayError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationFailed(ChatRelayError):
    status_code = 422


class Forbidden(ChatRelayError):
    status_code = 403


class NotFound(ChatRelayError):
    status_code = 404
