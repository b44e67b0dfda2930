# access_review_deploy/errors.py
from __future__ import annotations


class DeployError(RuntimeError):
    """Base class for every fatal condition of a deployment run."""

    kind = "deploy"

    def __init__(self, message: str, *, step: str = "") -> None:
        super().__init__(message)
        self.step = step

    def diagnostic(self) -> str:
        """Single line printed right before the process exits."""
        step = f" {self.step}" if self.step else ""
        # provider messages sometimes span lines
        message = " ".join(str(self).split())
        return f"Error [{self.kind}]{step}: {message}"


class UsageError(DeployError):
    """Unknown flag, missing value or missing required field."""

    kind = "usage"


class CredentialError(DeployError):
    """Raised when the selected identity cannot authenticate."""

    kind = "authentication"


class PackagingError(DeployError):
    kind = "packaging"


class ConvergenceError(DeployError):
    """The stack deploy call failed or the template was rejected."""

    kind = "convergence"


class ConsistencyError(DeployError):
    """Convergence succeeded but an expected stack output is absent."""

    kind = "consistency"


class CodeUpdateError(DeployError):
    kind = "code-update"


class InvocationError(DeployError):
    kind = "invocation"


__all__ = [
    "DeployError",
    "UsageError",
    "CredentialError",
    "PackagingError",
    "ConvergenceError",
    "ConsistencyError",
    "CodeUpdateError",
    "InvocationError",
]
