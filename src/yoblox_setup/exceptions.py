"""Custom exceptions for the yoblox-setup wizard.

This module defines exception types raised by the wizard:
- SetupError: Base class for every wizard error
- StepFailedError: Raised when a step reports an unrecoverable failure
- InvalidStepError: Raised when a step does not satisfy the step contract
- ConfigurationError: Raised when the settings file is invalid
- ProcessStartError: Raised when a background process cannot be started
"""

from typing import Optional


class SetupError(Exception):
    """Base class for all yoblox-setup errors."""


class StepFailedError(SetupError):
    """Raised when a step fails fatally and the pipeline must stop.

    The progress file is left untouched so the next run can resume
    at the failed step.

    Args:
        step_name: Name of the step that failed
        message: Optional human-readable reason

    Example:
        >>> raise StepFailedError("rust", "Cannot continue without Rust and Cargo")
    """

    def __init__(self, step_name: str, message: Optional[str] = None):
        self.step_name = step_name
        self.message = message or f"Step {step_name} failed"
        super().__init__(self.message)


class InvalidStepError(SetupError):
    """Raised when a step is missing a name or a run routine, or names collide."""


class ConfigurationError(SetupError):
    """Raised when wizard settings are invalid.

    Used for:
    - Invalid YAML syntax in the settings file
    - Unknown settings keys
    - Values of the wrong type

    Args:
        message: Error description
        file_path: Path to problematic settings file (optional)

    Example:
        >>> raise ConfigurationError("preferred_port must be an integer", file_path="yoblox-setup.yaml")
    """

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.message = message
        self.file_path = file_path
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with file context if available."""
        if self.file_path:
            return f"{self.message} in file: {self.file_path}"
        return self.message

    def __str__(self) -> str:
        return self._format_message()


class ProcessStartError(SetupError):
    """Raised when a managed background process fails to start.

    Args:
        name: Name the process was registered under
        message: Error description
        original_error: Underlying OS error (optional)
    """

    def __init__(self, name: str, message: str, original_error: Optional[Exception] = None):
        self.name = name
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation with original error context if available."""
        if self.original_error:
            return f"{self.message} (original: {self.original_error})"
        return self.message
