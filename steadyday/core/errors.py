class ApiError(Exception):
    """Caller-facing error with an HTTP status and a machine-readable code"""
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(ApiError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class RateLimitedError(ApiError):
    """Raised by the request boundary, never by the limiter itself"""
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, policy: str):
        super().__init__("Too many requests.")
        self.policy = policy
