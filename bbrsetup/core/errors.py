"""
Error hierarchy.

Every error here is terminal: the CLI logs the message and exits with
``exit_code``. Nothing is retried.
"""


class BBRSetupError(Exception):
    """Base class for all bbr-setup failures."""

    exit_code = 1


class PrivilegeError(BBRSetupError, PermissionError):
    """Raised when the process is not running as root."""


class UnsupportedKernelError(BBRSetupError):
    """Raised when the running kernel cannot provide BBR."""


class ModuleUnavailableError(BBRSetupError):
    """Raised when no signal shows the tcp_bbr algorithm is available."""


class VerificationError(BBRSetupError):
    """Raised when the live congestion control is not BBR after applying."""


class UsageError(BBRSetupError):
    """Raised for an invalid combination of command line flags."""


class InvalidTransitionError(BBRSetupError):
    """Raised when the run state machine receives an unexpected event."""
