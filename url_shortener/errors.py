class ShortenerError(Exception):
    """Base for every failure the shortener reports to its callers.

    ``status_code`` is the HTTP status the routing layer answers with and
    ``detail`` the message placed in the ``{"error": ...}`` body.
    """

    status_code = 500
    detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationFailed(ShortenerError):
    status_code = 400


class InvalidUrl(ValidationFailed):
    detail = "Invalid URL format"


class MissingUrl(InvalidUrl):
    detail = "URL is required"


class InvalidValidity(ValidationFailed):
    detail = "Validity must be a positive integer representing minutes"


class InvalidShortcode(ValidationFailed):
    detail = "Shortcode must be alphanumeric and max 20 characters"


class Conflict(ShortenerError):
    status_code = 409


class DuplicateKey(Conflict):
    detail = "Shortcode already exists"


class ShortcodeTaken(Conflict):
    detail = "Shortcode already exists"


class NotFound(ShortenerError):
    status_code = 404
    detail = "Short URL not found"


class Expired(ShortenerError):
    status_code = 410
    detail = "Short URL has expired"


class StillActive(ShortenerError):
    status_code = 400
    detail = "Cannot delete an active short URL"


class StoreFailure(ShortenerError):
    detail = "Internal server error"


class GenerationExhausted(ShortenerError):
    detail = "Failed to generate unique shortcode"
