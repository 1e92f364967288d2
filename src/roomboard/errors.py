class UserError(Exception):
    """Error whose message is safe to show to the caller.

    Each subclass carries the HTTP status and machine-readable type the
    web layer renders it with.
    """

    status_code = 400
    error_type = "bad_request"


class NotFoundError(UserError):
    status_code = 404
    error_type = "not_found"

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    error_type = "authentication_error"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Authenticated, but the admin level is too low."""

    status_code = 403
    error_type = "access_denied"


class ValidationError(UserError):
    status_code = 400
    error_type = "validation_error"


class DeviceLimitError(UserError):
    """Signing in would exceed the device limit and the user has not confirmed evicting the oldest device."""

    status_code = 409
    error_type = "device_limit_reached"


class DeviceStoreError(Exception):
    """Device session store failure (connection, timeout, write error)."""


class TokenHashConflictError(DeviceStoreError):
    """Device token hash already registered."""


class DeviceRejectedError(Exception):
    """The device gate denied a request.

    Rendered as a redirect to the home page carrying ``auth=<marker>``,
    with both device cookies cleared.
    """

    def __init__(self, marker: str) -> None:
        super().__init__(f"Device rejected: {marker}")
        self.marker = marker
