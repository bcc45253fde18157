"""
Chain Tutor - Conversation Data Model
Function call records and chat messages
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class FunctionCallStatus(Enum):
    """Lifecycle states of a function call."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"

    @property
    def is_terminal(self) -> bool:
        return self in (FunctionCallStatus.REJECTED, FunctionCallStatus.EXECUTED)


class MessageRole(Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    FUNCTION = "function"


def new_call_id() -> str:
    """Opaque unique identifier for a function call."""
    return uuid.uuid4().hex[:12]


@dataclass
class FunctionCall:
    """
    A request to run one capability, tracked through approval and execution.

    Only the FunctionCallRegistry changes `status` and `result`.
    `result` is set if and only if status is EXECUTED.
    """
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_call_id)
    status: FunctionCallStatus = FunctionCallStatus.PENDING
    result: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "arguments": dict(self.arguments),
            "status": self.status.value,
            "result": self.result,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class Message:
    """
    One chat message.

    Function messages carry the serialized result of an executed call and
    must name that call's capability; no other role carries a name.
    """
    role: MessageRole
    content: str
    name: Optional[str] = None
    call_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.role is MessageRole.FUNCTION and not self.name:
            raise ValueError("function messages require the capability name")
        if self.role is not MessageRole.FUNCTION and self.name is not None:
            raise ValueError(f"{self.role.value} messages cannot carry a name")

    def to_dict(self) -> Dict[str, Any]:
        """Chat-API shape: role, content and (for function results) name."""
        data: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name is not None:
            data["name"] = self.name
        return data
