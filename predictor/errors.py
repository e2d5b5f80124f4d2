"""
Error kinds raised by prediction store operations.

All of them are synchronous validation failures: the request is rejected,
nothing is written, and the caller reports the message to the user.
"""


class PredictionPoolError(Exception):
    """Base class for request-terminal prediction pool errors"""

    status_code = 400
    kind = "error"

    def __init__(self, message=None, details=None):
        self.message = message or self.__class__.__doc__
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        data = {"error": self.kind, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(PredictionPoolError):
    """Referenced match or prediction does not exist"""

    status_code = 404
    kind = "not_found"


class ConflictError(PredictionPoolError):
    """Prediction already exists for this match"""

    status_code = 409
    kind = "conflict"


class LockedError(PredictionPoolError):
    """Predictions are locked because the match has kicked off"""

    status_code = 423
    kind = "locked"


class ForbiddenError(PredictionPoolError):
    """Not authorized to modify this prediction"""

    status_code = 403
    kind = "forbidden"


class InvalidPredictionError(PredictionPoolError):
    """Goal values must be whole numbers within the allowed range"""

    status_code = 400
    kind = "invalid"


class InvalidMatchError(PredictionPoolError):
    """Match data is inconsistent with its status"""

    status_code = 400
    kind = "invalid"


class InvalidRequestError(PredictionPoolError):
    """Request body is missing fields or has malformed values"""

    status_code = 400
    kind = "invalid"
