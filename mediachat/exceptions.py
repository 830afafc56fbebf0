from typing import Dict, Optional


class MediaChatException(Exception):
    """Base exception for mediachat."""

    def __init__(self, message: str, error_code: str = None, details: Optional[Dict] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ProviderException(MediaChatException):
    """Raised when external provider fails."""
    pass


class StoreException(ProviderException):
    """Raised when a storage write fails."""
    pass


class ConfigurationException(MediaChatException):
    """Raised when configuration is invalid."""
    pass


class ValidationException(MediaChatException):
    """Raised when input validation fails."""
    pass


class ResourceNotFoundException(MediaChatException):
    """Raised when requested resource is not found."""
    pass


class InvalidTransitionException(MediaChatException):
    """Raised when a processing status change is not allowed."""
    pass


class ChatDisabledException(MediaChatException):
    """Raised when chat is turned off in configuration."""
    pass
