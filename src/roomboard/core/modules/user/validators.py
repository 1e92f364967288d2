from roomboard.errors import ValidationError

USERNAME_MAX_LENGTH = 64


def validate_username(username: str) -> None:
    """Usernames are non-empty, at most 64 characters, without whitespace."""
    if not username:
        raise ValidationError("Username cannot be empty")
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(f"Username cannot be longer than {USERNAME_MAX_LENGTH} characters")
    if any(char.isspace() for char in username):
        raise ValidationError("Username cannot contain whitespace characters")


def validate_password(password: str) -> None:
    """Validate password meets requirements.

    Requirements:
    - No whitespace characters
    - Minimum length of 6 characters

    Raises:
        ValidationError: If password doesn't meet requirements
    """
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters long")

    if any(char.isspace() for char in password):
        raise ValidationError("Password cannot contain whitespace characters")
