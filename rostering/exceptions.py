class InvalidDateRangeError(ValueError):
    """Raised when a generation window starts after it ends."""

    pass


class SettingsFileError(Exception):
    """Raised when a YAML settings or scenario file is missing or malformed."""

    pass


class UnknownStaffError(LookupError):
    """Raised when a request refers to a staff id that is not on the roster."""

    pass


# Mapping of custom exceptions to HTTP status codes
CUSTOM_ERRORS = {
    InvalidDateRangeError: 400,
    UnknownStaffError: 404,
    SettingsFileError: 500,
}
