"""Exception types raised across the onboarding generation flow."""


class CoachflowError(Exception):
    """Base class for application errors."""


class MissingRequiredFields(CoachflowError):
    """Raised when a request body lacks required fields."""

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class UpstreamWriteError(CoachflowError):
    """Raised when a frame cannot be written because the client went away."""


class GenerationFailure(CoachflowError):
    """Raised when profile upsert, plan generation or dispatch fails."""


class DuplicateRequest(GenerationFailure):
    """Raised when a request id is already owned by a different user."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Generation request {request_id} already exists")


class PublishError(GenerationFailure):
    """Raised when the background dispatch event could not be published."""
