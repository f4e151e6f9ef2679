"""Custom exceptions for Pluto"""


class PlutoException(Exception):
    """Base exception for all Pluto errors

    All custom exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        code: Stable error code (e.g., "CONFIGURATION_ERROR")
    """

    def __init__(self, message: str, code: str):
        """Initialize Pluto exception

        Args:
            message: Human-readable error message
            code: Error code
        """
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(PlutoException):
    """Configuration error (invalid or unusable configuration)

    Examples:
        - Shell command evaluates to an empty string
        - Dimension ratio is not a number
        - Output name cannot be derived from the source file
    """

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class EnvironmentError(PlutoException):
    """No usable default shell in the environment

    Raised when $SHELL is absent and no shell command was configured.
    """

    def __init__(self, message: str):
        super().__init__(message, "ENVIRONMENT_ERROR")


# ==================== Host Layer Exceptions ====================


class HostException(PlutoException):
    """Base exception for errors surfaced by a host implementation"""

    def __init__(self, message: str, code: str):
        super().__init__(message, code)


class SpawnFailure(HostException):
    """Host refused to spawn the terminal process

    Examples:
        - Target buffer already hosts a terminal
        - Command executable not found
    """

    def __init__(self, message: str):
        super().__init__(message, "SPAWN_FAILURE")


class StaleHandleError(HostException):
    """A surface, buffer or process handle is no longer known to the host

    Hosts raise this; TerminalSession never lets it escape and treats the
    handle as absent instead.
    """

    def __init__(self, message: str):
        super().__init__(message, "STALE_HANDLE")
