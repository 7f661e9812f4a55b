"""Run-level failure kinds."""

from __future__ import annotations

ERROR_FILE_NOT_FOUND = "FILE_NOT_FOUND"
ERROR_MISSING_COLUMNS = "MISSING_COLUMNS"
ERROR_PARSE_FAILED = "PARSE_FAILED"
ERROR_WRITE_FAILED = "WRITE_FAILED"
ERROR_UNKNOWN = "UNKNOWN"

ERROR_CODES = (
    ERROR_FILE_NOT_FOUND,
    ERROR_MISSING_COLUMNS,
    ERROR_PARSE_FAILED,
    ERROR_WRITE_FAILED,
    ERROR_UNKNOWN,
)


class AnalyzerError(Exception):
    def __init__(self, message: str, code: str = ERROR_UNKNOWN) -> None:
        super().__init__(message)
        self.code = code


class FileMissingError(AnalyzerError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERROR_FILE_NOT_FOUND)


class ParseFailedError(AnalyzerError):
    """Unrecoverable stream or record structure failure (not a bad cell)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ERROR_PARSE_FAILED)


class WriteFailedError(AnalyzerError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERROR_WRITE_FAILED)


class ConfigError(ValueError):
    pass
