"""Classified catalog errors. Each carries the HTTP status it renders as."""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(CatalogError):
    status_code = 400


class InvalidId(InvalidInput):
    def __init__(self, value: object):
        super().__init__(f"Invalid product ID format: {value!r}")
        self.value = value


class MissingCategory(CatalogError):
    status_code = 400

    def __init__(self):
        super().__init__("Category is required")


class UnsupportedCategory(CatalogError):
    status_code = 400

    def __init__(self, token: str):
        super().__init__(f"Unsupported category: {token}")
        self.token = token


class NotFound(CatalogError):
    status_code = 404


class SourceUnavailable(CatalogError):
    """A single collection could not be reached.

    Reads absorb this; only admin writes let it surface.
    """

    status_code = 503

    def __init__(self, source: str, cause: BaseException | None = None):
        super().__init__(f"Data source unavailable: {source}")
        self.source = source
        self.cause = cause
