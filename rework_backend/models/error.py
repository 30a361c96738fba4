"""
Pydantic model for error responses.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Standard error response of the API.

    Returned by the exception handlers so every error has the same shape.
    """
    success: bool = Field(
        False,
        description="Always False for errors"
    )
    error: str = Field(
        ...,
        description="Error code (e.g. STATION_NOT_FOUND, INVALID_STATE_TRANSITION)",
        examples=["STATION_NOT_FOUND", "INVALID_STATE_TRANSITION", "STATION_BUSY"]
    )
    message: str = Field(
        ...,
        description="Human readable error message",
        examples=[
            "Choco rework station with Id 7 not found",
            "Cannot fire TankChosen from state WaitPallet on station 7"
        ]
    )
    data: Optional[dict[str, Any]] = Field(
        None,
        description="Additional error context (optional)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "success": False,
                    "error": "STATION_NOT_FOUND",
                    "message": "Choco rework station with Id 99 not found",
                    "data": {"station_id": 99}
                },
                {
                    "success": False,
                    "error": "INVALID_STATE_TRANSITION",
                    "message": "Cannot fire TankChosen from state WaitPallet on station 7",
                    "data": {
                        "station_id": 7,
                        "current_state": "WaitPallet",
                        "attempted_trigger": "TankChosen",
                        "permitted_triggers": ["Pause", "PalletArrived", "DetectError"]
                    }
                }
            ]
        }
    )
