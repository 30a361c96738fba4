"""
Outcome of firing a trigger on a station.

Replaces a bare success boolean: callers can tell a rejected trigger from a
clean transition and from a transition whose side effects partly failed.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from rework_backend.models.machine import MachineState, MachineTrigger


class OutcomeStatus(str, Enum):
    """
    REJECTED: Trigger not permitted from the current state, nothing ran
    APPLIED: State changed and every side effect succeeded
    DEGRADED: State changed but at least one side effect failed
    """
    REJECTED = "rejected"
    APPLIED = "applied"
    DEGRADED = "degraded"


class ActionStage(str, Enum):
    EXIT = "exit"
    ENTRY = "entry"
    PERSIST_AND_NOTIFY = "persist_and_notify"


class SideEffectFailure(BaseModel):
    """A side effect that failed while a legal transition ran."""
    stage: ActionStage
    action: str = Field(..., description="Operation name or persist_and_notify")
    error: str = Field(..., description="Error code", examples=["OPERATION_HANDLER_ERROR"])
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class TransitionOutcome(BaseModel):
    """
    Result of StationController.trigger().

    Attributes:
        accepted: True iff the trigger was legal and the transition attempted
        status: REJECTED / APPLIED / DEGRADED
        previous_state: State before the trigger
        state: State after the trigger (unchanged when rejected)
        failures: Side effects that failed (empty unless DEGRADED)
        reason: Human readable rejection reason
    """
    station_id: int
    trigger: MachineTrigger
    status: OutcomeStatus
    previous_state: MachineState
    state: MachineState
    failures: list[SideEffectFailure] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is not OutcomeStatus.REJECTED

    @classmethod
    def rejected(
        cls,
        station_id: int,
        trigger: MachineTrigger,
        state: MachineState,
        reason: str
    ) -> "TransitionOutcome":
        return cls(
            station_id=station_id,
            trigger=trigger,
            status=OutcomeStatus.REJECTED,
            previous_state=state,
            state=state,
            reason=reason
        )

    @classmethod
    def applied(
        cls,
        station_id: int,
        trigger: MachineTrigger,
        previous_state: MachineState,
        state: MachineState,
        failures: list[SideEffectFailure]
    ) -> "TransitionOutcome":
        return cls(
            station_id=station_id,
            trigger=trigger,
            status=OutcomeStatus.DEGRADED if failures else OutcomeStatus.APPLIED,
            previous_state=previous_state,
            state=state,
            failures=list(failures)
        )
