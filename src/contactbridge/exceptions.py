"""Custom exceptions for contactbridge."""


class ContactBridgeError(Exception):
    """Base exception for all contactbridge errors."""


class ConfigurationError(ContactBridgeError):
    """Missing or invalid configuration (consumer, mappings, identity store...)."""


class RemoteCallError(ContactBridgeError):
    """A call to the external system or the platform failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ExternalAPIError(RemoteCallError):
    """Error from the external system's API."""


class PlatformAPIError(RemoteCallError):
    """Error from the platform API."""

    def __init__(self, status_code: int | None, message: str):
        prefix = f"Platform API error ({status_code})" if status_code else "Platform API error"
        super().__init__(f"{prefix}: {message}", status_code=status_code)


class IdentityStoreError(ContactBridgeError):
    """The identity store backend failed to read or write."""
