"""
Shared error handling for the ISIL Tagger.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error format written to the diagnostic stream."""
    
    code: str
    message: str
    details: Dict[str, Any] = {}


class TaggerException(Exception):
    """Base exception for the tagger."""
    
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)
    
    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ParseError(TaggerException):
    """Malformed input record or holdings file."""
    
    def __init__(self, message: str = "Parse error", details: Optional[Dict[str, Any]] = None):
        super().__init__("PARSE_ERROR", message, details)


class UnparsableValue(TaggerException):
    """A value needed for a coverage comparison could not be parsed.

    Raised per licensing entry; callers treat it as "this entry does not
    cover" and move on to the next entry.
    """
    
    def __init__(self, field: str, value: Any, details: Optional[Dict[str, Any]] = None):
        self.field = field
        self.value = value
        super().__init__(
            "UNPARSABLE_VALUE",
            f"cannot parse {field}: {value!r}",
            {"field": field, "value": value, **(details or {})}
        )


class ConfigError(TaggerException):
    """Invalid tagger or filter configuration."""
    
    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_ERROR", message, details)


class ConfigContradiction(ConfigError):
    """A configuration rule contradicts itself."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        TaggerException.__init__(self, "CONFIG_CONTRADICTION", message, details)


class NoMatchingCase(ConfigError):
    """None of the attachment modes applies to a configuration rule."""
    
    def __init__(self, message: str = "None of the attachment modes match", details: Optional[Dict[str, Any]] = None):
        TaggerException.__init__(self, "NO_MATCHING_CASE", message, details)


class ConfigStoreError(TaggerException):
    """Configuration store cannot be opened or queried."""
    
    def __init__(self, message: str = "Configuration store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_STORE_ERROR", message, details)


class DownloadError(TaggerException):
    """A holdings file could not be fetched."""
    
    def __init__(self, link: str, message: str = "Download failed", details: Optional[Dict[str, Any]] = None):
        self.link = link
        super().__init__("DOWNLOAD_ERROR", f"{link}: {message}", {"link": link, **(details or {})})
