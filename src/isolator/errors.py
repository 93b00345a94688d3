"""
Exception hierarchy for the isolator.

All isolator exceptions inherit from IsolatorError, allowing callers to catch
every isolator-specific failure with a single except clause.

Exception Categories:
    - ComponentNotFoundError: A requested seed is unknown to the host
    - CapsulePathEscapeError: A capsule path resolves outside its directory
    - CapsuleInvariantError: Internal invariant broken (programming error)
    - RootLockedError: Isolation root lock could not be taken
    - InstallError / LinkError: External collaborator failed
    - IsolationCancelledError: Run stopped at a cancellation checkpoint
    - ConfigError: Configuration file is missing or invalid

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (component, capsule, phase where applicable)
    - All errors provide actionable suggestions where possible
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Resolution errors: 1xxx
ERROR_COMPONENT_NOT_FOUND = 1001

# Capsule errors: 2xxx
ERROR_CAPSULE_PATH_ESCAPE = 2001
ERROR_CAPSULE_INVARIANT = 2002
ERROR_ROOT_LOCKED = 2003

# Install/link errors: 3xxx
ERROR_INSTALL_FAILED = 3001
ERROR_LINK_FAILED = 3002

# Run control errors: 4xxx
ERROR_CANCELLED = 4001

# Configuration errors: 5xxx
ERROR_CONFIG_INVALID = 5001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class IsolatorError(Exception):
    """
    Base exception for all isolator errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Resolution Errors
# =============================================================================


@dataclass
class ComponentNotFoundError(IsolatorError):
    """
    Raised when a seed component cannot be resolved by the component host.

    Attributes:
        component_id: String form of the missing component id
    """

    component_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Component not found: {self.component_id}"
        if self.code == 0:
            self.code = ERROR_COMPONENT_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check the component id and version, or import the component first"
        self.context["component_id"] = self.component_id


# =============================================================================
# Capsule Errors
# =============================================================================


@dataclass
class CapsuleError(IsolatorError):
    """
    Base class for capsule errors.

    Attributes:
        capsule_path: Directory of the capsule involved
    """

    capsule_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["capsule_path"] = self.capsule_path


@dataclass
class CapsulePathEscapeError(CapsuleError):
    """Raised when a path given to a capsule filesystem leaves the capsule."""

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Path escapes capsule {self.capsule_path}: {self.path}"
        if self.code == 0:
            self.code = ERROR_CAPSULE_PATH_ESCAPE
        super().__post_init__()
        self.context["path"] = self.path


@dataclass
class CapsuleInvariantError(CapsuleError):
    """
    Raised when an internal invariant between components and capsules breaks.

    This is a programming error, not a recoverable condition.
    """

    component_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No capsule data found for component {self.component_id}"
        if self.code == 0:
            self.code = ERROR_CAPSULE_INVARIANT
        super().__post_init__()
        self.context["component_id"] = self.component_id


@dataclass
class RootLockedError(CapsuleError):
    """Raised when the isolation root lock cannot be acquired."""

    lock_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Isolation root is locked by another run: {self.lock_path}"
        if self.code == 0:
            self.code = ERROR_ROOT_LOCKED
        if not self.suggestion:
            self.suggestion = "Wait for the other isolation run to finish"
        super().__post_init__()
        self.context["lock_path"] = self.lock_path


# =============================================================================
# Install / Link Errors
# =============================================================================


@dataclass
class PhaseError(IsolatorError):
    """
    Base class for failures of an external install or link collaborator.

    Attributes:
        root_dir: Isolation root the phase ran against
        underlying_error: String form of the original exception
    """

    root_dir: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "root_dir": self.root_dir,
            "underlying_error": self.underlying_error,
        })


@dataclass
class InstallError(PhaseError):
    """Raised when the installer fails. Fatal for the run, never retried."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Installation failed in {self.root_dir}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_INSTALL_FAILED
        super().__post_init__()


@dataclass
class LinkError(PhaseError):
    """Raised when linking fails. Fatal for the run, never retried."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Linking failed in {self.root_dir}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_LINK_FAILED
        super().__post_init__()


# =============================================================================
# Run Control Errors
# =============================================================================


@dataclass
class IsolationCancelledError(IsolatorError):
    """Raised at a cancellation checkpoint once the run has been cancelled."""

    phase: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Isolation cancelled before {self.phase}"
        if self.code == 0:
            self.code = ERROR_CANCELLED
        self.context["phase"] = self.phase


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(IsolatorError):
    """Raised when an isolator configuration file cannot be loaded."""

    config_path: str = ""
    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration {self.config_path}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({
            "config_path": self.config_path,
            "validation_error": self.validation_error,
        })
