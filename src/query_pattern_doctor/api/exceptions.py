class ManagementAPIError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ManagementAPIError):
    def __init__(
        self, message: str = "Rate limit exceeded", retry_after: float | None = None
    ) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class AuthenticationError(ManagementAPIError):
    def __init__(self, message: str = "Invalid or expired access token") -> None:
        super().__init__(message, status_code=401)


class NotFoundError(ManagementAPIError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=404)


class QueryExecutionError(ManagementAPIError):
    """The database rejected a statement sent through the SQL endpoint."""
