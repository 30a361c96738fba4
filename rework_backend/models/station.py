"""
Pydantic models for choco rework station records and station API requests.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from rework_backend.models.machine import MachineState, MachineTrigger


class ReworkStation(BaseModel):
    """
    Persisted record of a choco rework station.

    The record is also the payload of every state change notification.
    """
    id: int = Field(..., description="Station id (externally assigned)", examples=[7])
    type: str = Field(..., description="Station type", examples=["choco_rework"])
    status: str = Field(..., description="Persisted state code", examples=["wait_pallet"])
    ax_item_request_id: Optional[int] = Field(
        None,
        description="Linked order (ERP item request) reference",
        ge=0
    )
    choco_production_id: Optional[int] = Field(
        None,
        description="Linked production reference"
    )
    component: Optional[str] = Field(None, description="Component being reworked")
    version: int = Field(
        0,
        description="Optimistic concurrency counter, incremented on every write",
        ge=0
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "id": 7,
                    "type": "choco_rework",
                    "status": "scan_pallet",
                    "ax_item_request_id": None,
                    "choco_production_id": None,
                    "component": None,
                    "version": 4
                }
            ]
        }
    )


class UpdateStationRequest(BaseModel):
    """
    Request body for an administrative status override.

    Used by PUT /api/stations/{id}. Bypasses the transition table.
    """
    status: str = Field(
        ...,
        description="New state code",
        min_length=1,
        examples=["no_order"]
    )


class TriggerRequest(BaseModel):
    """
    Request body to fire a trigger on a station.

    Used by POST /api/stations/{id}/triggers.
    """
    trigger: MachineTrigger = Field(..., description="Trigger name", examples=["PalletArrived"])
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque parameters forwarded to the operation handlers"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"trigger": "PalletArrived", "parameters": {"pallet_id": "PAL-0042"}}
            ]
        }
    )


class StationStateResponse(BaseModel):
    """Current state of a station."""
    station_id: int
    state: MachineState
    code: str


class PermittedTriggersResponse(BaseModel):
    """Triggers legal from the station's current state."""
    station_id: int
    state: MachineState
    permitted_triggers: list[MachineTrigger]
