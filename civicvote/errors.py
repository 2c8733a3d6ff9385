"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is safe to
show the caller. ``main`` renders them as ``{"error": message}``.
"""
from bson import ObjectId
from bson.errors import InvalidId


class VotingError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VotingError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(VotingError):
    status_code = 400
    default_message = "Conflicting record already exists"


class AuthError(VotingError):
    status_code = 401
    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    default_message = "Invalid or expired token"


class ForbiddenError(VotingError):
    status_code = 403
    default_message = "Forbidden"


class IneligibleAgeError(ForbiddenError):
    default_message = "Forbidden: Voters must be at least 18 years old."


class NotFoundError(VotingError):
    status_code = 404
    default_message = "Not found"


class IncompleteProfileError(NotFoundError):
    default_message = "Voter address information is incomplete."


class DuplicateVoteError(VotingError):
    status_code = 409
    default_message = "You have already cast your vote in this election."


class InternalError(VotingError):
    status_code = 500
    default_message = "Internal server error"


class ConfigError(InternalError):
    pass


def parse_object_id(value: str, label: str = "ID") -> ObjectId:
    """Convert a path/body id to an ObjectId or fail with a 400."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label} format.")
