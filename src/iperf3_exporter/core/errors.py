from enum import Enum


class InvalidRequest(Exception):
    """
    A scrape request carried a missing or malformed parameter.

    status_code is 400 for bad user input and 500 for a malformed scraper
    timeout header.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProbeErrorKind(str, Enum):
    EXECUTION_ERROR = "execution_error"
    PARSE_ERROR = "parse_error"


class ProbeFailure(Exception):
    """
    A probe did not yield a usable measurement.
    """

    def __init__(self, kind: ProbeErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self):
        return f"{self.kind.value}: {self.message}"
