from fastapi import status


class BookingError(Exception):
    """
    Base class for failures the booking core reports to its caller.
    The HTTP layer renders ``message`` with ``status_code``.
    """
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT


class InvalidState(BookingError):
    status_code = status.HTTP_409_CONFLICT
