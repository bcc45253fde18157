"""
Chain Tutor - Capability Error Types
Structured errors for failed capability executions
"""

from enum import Enum
from typing import Optional


class CapabilityErrorType(Enum):
    """
    Categories of execution failures.

    These types let the failure explanation tell the learner what went
    wrong and whether trying again could help.
    """
    UNKNOWN_CAPABILITY = "unknown_capability"  # Name not in the capability table
    INVALID_ARGUMENTS = "invalid_arguments"    # Missing or malformed arguments
    NOT_APPROVED = "not_approved"              # Call was not in the approved state
    NETWORK = "network"                        # RPC endpoint unreachable / timed out
    REVERTED = "reverted"                      # Transaction reverted on chain
    BACKEND = "backend"                        # Any other collaborator failure

    @property
    def retryable(self) -> bool:
        return self in (CapabilityErrorType.NETWORK, CapabilityErrorType.BACKEND)


class CapabilityError(Exception):
    """
    A capability failure with context for the learner.

    Collaborator backends may raise this directly to pick the category;
    any other exception is classified by the executor.

    Attributes:
        error_type: Category of the error
        message: Human-readable error description
        hint: Optional suggestion for fixing the request
    """

    def __init__(
        self,
        error_type: CapabilityErrorType,
        message: str,
        hint: Optional[str] = None
    ):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.hint = hint

    def format_for_display(self) -> str:
        """
        Format the error for an explanation message.

        Returns:
            One or two lines describing the failure
        """
        text = f"Error ({self.error_type.value}): {self.message}"
        if self.hint:
            text += f"\n  Hint: {self.hint}"
        return text

    def __str__(self) -> str:
        return self.format_for_display()
