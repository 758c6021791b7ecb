"""
Custom Exception Classes for the control panel

This module defines the panel's exception taxonomy. Every exception carries
an HTTP status code and a machine-readable error code so the global handlers
in hostpanel.exception_handlers can render a consistent error envelope.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes exposed in error responses."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    EVENT_INVALID_LISTENER = "EVENT_INVALID_LISTENER"
    EVENT_PARAM_NOT_FOUND = "EVENT_PARAM_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    PLUGIN_NOT_FOUND = "PLUGIN_NOT_FOUND"
    PLUGIN_ERROR = "PLUGIN_ERROR"
    PLUGIN_INVALID_DESCRIPTOR = "PLUGIN_INVALID_DESCRIPTOR"
    PLUGIN_LOAD_FAILED = "PLUGIN_LOAD_FAILED"


class PanelError(Exception):
    """Base exception class for all panel exceptions"""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Authentication Exceptions
# ============================================================================


class AuthenticationError(PanelError):
    """Raised when the admin credentials are missing or wrong"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


# ============================================================================
# Event Exceptions
# ============================================================================


class InvalidListenerError(PanelError):
    """Raised at attach time for listeners that cannot be called as (context, params)"""

    error_code = ErrorCode.EVENT_INVALID_LISTENER

    def __init__(self, message: str, event_name: str | None = None):
        details = {"event_name": event_name} if event_name else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


# ============================================================================
# Not Found Exceptions
# ============================================================================


class NotFoundError(PanelError):
    """Base class for lookups that found nothing"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        status_code: int = status.HTTP_404_NOT_FOUND,
    ):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status_code,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ParamNotFoundError(NotFoundError, KeyError):
    """Raised by EventContext.get_param() for missing parameters"""

    error_code = ErrorCode.EVENT_PARAM_NOT_FOUND

    def __init__(self, name: str):
        # A missing parameter is a listener bug, not a missing HTTP resource
        super().__init__(
            resource_type="Event parameter",
            resource_id=name,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    def __str__(self) -> str:
        return self.message


class ServiceNotFoundError(NotFoundError):
    """Raised by the service locator for unknown service names"""

    error_code = ErrorCode.SERVICE_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(
            resource_type="Service",
            resource_id=name,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class PluginNotFoundError(NotFoundError):
    """Raised when no plugin with the given name was discovered"""

    error_code = ErrorCode.PLUGIN_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(resource_type="Plugin", resource_id=name)


# ============================================================================
# Plugin Exceptions
# ============================================================================


class PluginError(PanelError):
    """Raised when a plugin operation is refused or fails"""

    error_code = ErrorCode.PLUGIN_ERROR

    def __init__(self, message: str, plugin: str | None = None, status_code: int = status.HTTP_400_BAD_REQUEST):
        details = {"plugin": plugin} if plugin else {}
        super().__init__(message=message, status_code=status_code, details=details)


class PluginDescriptorError(PluginError):
    """Raised when a plugin directory holds a missing or malformed plugin.json"""

    error_code = ErrorCode.PLUGIN_INVALID_DESCRIPTOR


class PluginLoadError(PluginError):
    """Raised when a plugin's entry module cannot be imported or instantiated"""

    error_code = ErrorCode.PLUGIN_LOAD_FAILED

    def __init__(self, message: str, plugin: str | None = None):
        super().__init__(message=message, plugin=plugin, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
