class PPEServiceError(Exception):
    """Base error for anything that should end a request with a JSON error body."""

    status_code = 500
    default_message = "Error processing request"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class MissingUploadError(PPEServiceError):
    status_code = 400
    default_message = "No file uploaded"


class TranscodingError(PPEServiceError):
    status_code = 500
    default_message = "Error processing video"


class DetectorError(PPEServiceError):
    status_code = 502
    default_message = "Error detecting PPE"


class AuthenticationError(PPEServiceError):
    status_code = 401
    default_message = "Authentication required"


class InvalidCredentialsError(PPEServiceError):
    status_code = 400
    default_message = "Invalid credentials"


class UserExistsError(PPEServiceError):
    status_code = 400
    default_message = "User already exists"


class StoreError(PPEServiceError):
    status_code = 500
    default_message = "Database error"
