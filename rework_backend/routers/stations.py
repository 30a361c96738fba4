"""
Stations Router - choco rework station records and state machine.

Endpoints:
- GET /api/stations: List every persisted station
- GET /api/stations/{station_id}: Station record
- PUT /api/stations/{station_id}: Administrative status override
- GET /api/stations/{station_id}/state: Current state and code
- GET /api/stations/{station_id}/info: Transition table introspection
- GET /api/stations/{station_id}/permitted-triggers: Legal triggers now
- GET /api/stations/{station_id}/diagram: Mermaid state diagram
- POST /api/stations/{station_id}/triggers: Fire a trigger

Exception handling (global handler in main.py):
- IllegalTransitionError → 409 CONFLICT (rejected trigger)
- StationBusyError → 409 CONFLICT
- StationNotFoundError → 404 NOT FOUND
- InvalidStatusError → 400 BAD REQUEST
- UnknownPersistedStateError → 500
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from rework_backend.core.dependency import get_controller_factory, get_station_service
from rework_backend.exceptions import IllegalTransitionError
from rework_backend.models.machine import MachineInfo, encode_state
from rework_backend.models.outcome import TransitionOutcome
from rework_backend.models.station import (
    PermittedTriggersResponse,
    ReworkStation,
    StationStateResponse,
    TriggerRequest,
    UpdateStationRequest
)
from rework_backend.services.controller_factory import StationControllerFactory
from rework_backend.services.station_service import StationService
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/stations", response_model=list[ReworkStation])
async def list_stations(service: StationService = Depends(get_station_service)):
    return await service.list_stations()


@router.get("/stations/{station_id}", response_model=ReworkStation)
async def get_station(
    station_id: int,
    service: StationService = Depends(get_station_service)
):
    """
    Station record.

    Raises:
        HTTPException 404: If the station was never persisted
    """
    return await service.get_station(station_id)


@router.put("/stations/{station_id}", response_model=ReworkStation)
async def update_station(
    station_id: int,
    request: UpdateStationRequest,
    service: StationService = Depends(get_station_service)
):
    """
    Overwrite a station's status code and publish the record.

    Bypasses the transition table (maintenance/recovery use).

    Example request:
        ```json
        {"status": "no_order"}
        ```

    Raises:
        HTTPException 400: Unknown status code
        HTTPException 404: Station not found
        HTTPException 409: Station busy or modified concurrently
    """
    return await service.update_status(station_id, request.status)


@router.get("/stations/{station_id}/state", response_model=StationStateResponse)
async def get_station_state(
    station_id: int,
    factory: StationControllerFactory = Depends(get_controller_factory)
):
    controller = await factory.create(station_id)
    return StationStateResponse(
        station_id=station_id,
        state=controller.current_state,
        code=encode_state(controller.current_state)
    )


@router.get("/stations/{station_id}/info", response_model=MachineInfo)
async def get_station_info(
    station_id: int,
    factory: StationControllerFactory = Depends(get_controller_factory)
):
    controller = await factory.create(station_id)
    return controller.info()


@router.get("/stations/{station_id}/permitted-triggers", response_model=PermittedTriggersResponse)
async def get_permitted_triggers(
    station_id: int,
    factory: StationControllerFactory = Depends(get_controller_factory)
):
    controller = await factory.create(station_id)
    return PermittedTriggersResponse(
        station_id=station_id,
        state=controller.current_state,
        permitted_triggers=controller.permitted_triggers()
    )


@router.get("/stations/{station_id}/diagram", response_class=PlainTextResponse)
async def get_station_diagram(
    station_id: int,
    factory: StationControllerFactory = Depends(get_controller_factory)
):
    """Mermaid stateDiagram-v2 of the workflow, current state highlighted."""
    controller = await factory.create(station_id)
    return PlainTextResponse(controller.diagram())


@router.post(
    "/stations/{station_id}/triggers",
    response_model=TransitionOutcome,
    status_code=status.HTTP_200_OK
)
async def fire_trigger(
    station_id: int,
    request: TriggerRequest,
    factory: StationControllerFactory = Depends(get_controller_factory)
):
    """
    Fire a trigger on a station.

    Returns the outcome with status "applied", or "degraded" when the state
    changed but a side effect (operation, persistence, notification) failed.

    Example request:
        ```json
        {"trigger": "PalletArrived", "parameters": {"pallet_id": "PAL-0042"}}
        ```

    Example response:
        ```json
        {
            "station_id": 7,
            "trigger": "PalletArrived",
            "status": "applied",
            "previous_state": "WaitPallet",
            "state": "ScanPallet",
            "failures": [],
            "reason": null
        }
        ```

    Raises:
        HTTPException 409: INVALID_STATE_TRANSITION if the trigger is not
            permitted from the current state (with permitted_triggers)
        HTTPException 409: STATION_BUSY if another transition holds the station
    """
    controller = await factory.create(station_id)
    outcome = await controller.trigger(request.trigger, request.parameters)

    if not outcome.accepted:
        raise IllegalTransitionError(
            station_id=station_id,
            current_state=outcome.state.value,
            trigger=request.trigger.value,
            permitted_triggers=[t.value for t in controller.permitted_triggers()]
        )

    return outcome
