"""
Action execution models and data structures.
"""

import hashlib
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def content_hash(text: str) -> str:
    """sha256 hex digest of a transcript."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ActionStatus(str, Enum):
    """Status of an action execution."""
    SUCCESS = "success"
    FAILED = "failed"


class TargetOS(str, Enum):
    MACOS = "macos"
    WINDOWS = "windows"
    LINUX = "linux"
    ANY = "any"


class ActionDefinition(BaseModel):
    """An allowlisted action. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    os: TargetOS = TargetOS.ANY
    commands: Tuple[str, ...]
    rollback_commands: Tuple[str, ...] = ()
    reversible: bool = True
    estimated_time: str = "10 seconds"
    requirements: Tuple[str, ...] = ("Administrator privileges",)
    creates_backup: bool = False
    description: str = ""
    category: str = "general"

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("action id must not be blank")
        return value

    @field_validator("commands", "rollback_commands")
    @classmethod
    def _commands_not_blank(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        for command in value:
            if not command.split():
                raise ValueError("commands must not be blank")
        return value

    @model_validator(mode="after")
    def _backup_needs_rollback(self) -> "ActionDefinition":
        if not self.commands:
            raise ValueError(f"action {self.id!r} has no commands")
        if self.creates_backup and not self.rollback_commands:
            raise ValueError(f"action {self.id!r} creates a backup but has no rollback commands")
        return self

    @property
    def can_rollback(self) -> bool:
        return self.reversible and bool(self.rollback_commands)

    def with_rollback(self, rollback_commands: List[str]) -> "ActionDefinition":
        """Copy of this definition with a rollback sequence, marked as creating a backup."""
        return type(self).model_validate({
            **self.model_dump(),
            "rollback_commands": tuple(rollback_commands),
            "creates_backup": True,
        })

    def get_capability(self) -> "ActionCapability":
        return ActionCapability(
            action_name=self.id,
            title=self.title,
            description=self.description,
            os=self.os.value,
            category=self.category,
            reversible=self.can_rollback,
            creates_backup=self.creates_backup,
            requirements=list(self.requirements),
            estimated_time=self.estimated_time,
            step_count=len(self.commands),
        )


class ActionCapability(BaseModel):
    """Describes what an allowlisted action does, without its command text."""
    action_name: str
    title: str
    description: str = ""
    os: str = "any"
    category: str = "general"
    reversible: bool = False
    creates_backup: bool = False
    requirements: List[str] = Field(default_factory=list)
    estimated_time: str = ""
    step_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')


class CommandStep(BaseModel):
    """One spawned command and what it produced."""
    command: str
    program: str
    args: List[str] = Field(default_factory=list)
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    success: bool = False

    def transcript(self) -> str:
        if self.error is not None:
            return f"Failed to execute command '{self.command}': {self.error}\n"
        block = f"Command: {self.command}\n"
        if self.stdout:
            block += f"Output: {self.stdout}\n"
        if self.stderr:
            block += f"Error: {self.stderr}\n"
        return block


class Artifact(BaseModel):
    """Structured evidence derived from an execution."""
    type: str
    uri: Optional[str] = None
    hash: Optional[str] = None
    data: Optional[str] = None


class RollbackPoint(BaseModel):
    """Correlates a successful remediation with its means of reversal."""
    method: str = "command_sequence"
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_output(cls, action_id: str, output: str) -> "RollbackPoint":
        return cls(data={
            "action_id": action_id,
            "timestamp": utcnow().isoformat(),
            "output_hash": content_hash(output),
        })


def create_artifacts(action_id: str, output: str) -> List[Artifact]:
    """Artifacts derived from a transcript: currently the hashed execution log."""
    return [
        Artifact(
            type="execution_log",
            hash=content_hash(output),
            data=output,
        )
    ]


class ExecutionOutcome(BaseModel):
    """Result of running an action's forward or rollback sequence."""
    action_id: str
    status: ActionStatus
    success: bool
    message: str
    output: str = ""
    error: Optional[str] = None
    steps: List[CommandStep] = Field(default_factory=list)
    artifacts: List[Artifact] = Field(default_factory=list)
    rollback_id: Optional[str] = None
    rollback_point: Optional[RollbackPoint] = None

    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    def mark_completed(self):
        """Mark action as completed and calculate duration."""
        self.completed_at = utcnow()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.duration_seconds = delta.total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return self.model_dump(mode='json')

    def to_response(self) -> Dict[str, Any]:
        """Wire shape handed back to the embedding shell and HTTP callers."""
        return {
            "success": self.success,
            "message": self.message,
            "output": self.output,
            "error": self.error,
            "artifacts": [a.model_dump(mode='json') for a in self.artifacts],
            "rollbackId": self.rollback_id,
        }
