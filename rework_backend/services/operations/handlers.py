"""
Operation handlers of the choco rework station workflow.

Physical actuation is simulated: each handler logs what the station does
and waits for the configured operation delay. Parameters passed with the
trigger (pallet ids, tank ids, error codes, ...) are logged with the step.
"""
import asyncio

from rework_backend.models.machine import MachineContext
from rework_backend.services.operations.base import OperationHandler
from rework_backend.utils.logger import get_logger


class SimulatedOperationHandler(OperationHandler):
    """
    Handler that simulates a physical step with a delay.

    Attributes:
        delay_seconds: Simulated processing time
        description: Verb phrase logged when the step runs
    """

    description: str = "Running operation"

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self.logger = get_logger(f"{__name__}.{type(self).__name__}")

    async def execute(self, context: MachineContext) -> None:
        if context.parameters:
            self.logger.info(
                f"{self.description}: station {context.station_id} "
                f"({context.trigger.value}, parameters={context.parameters})"
            )
        else:
            self.logger.info(f"{self.description}: station {context.station_id} ({context.trigger.value})")

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)


class InitializeOperationHandler(SimulatedOperationHandler):
    name = "initialize"
    description = "Initializing station"


class StartOperationHandler(SimulatedOperationHandler):
    name = "start"
    description = "Starting station"


class PalletArrivedOperationHandler(SimulatedOperationHandler):
    name = "pallet_arrived"
    description = "Pallet arrived at station"


class ScanPalletOperationHandler(SimulatedOperationHandler):
    name = "scan_pallet"
    description = "Scanning pallet"


class ScanTankOperationHandler(SimulatedOperationHandler):
    name = "scan_tank"
    description = "Scanning tank"


class BigbagEmptiedOperationHandler(SimulatedOperationHandler):
    name = "bigbag_emptied"
    description = "Bigbag emptied"


class TankChosenOperationHandler(SimulatedOperationHandler):
    name = "tank_chosen"
    description = "Routing rework to chosen tank"


class PauseOperationHandler(SimulatedOperationHandler):
    name = "pause"
    description = "Pausing station"


class ResumeOperationHandler(SimulatedOperationHandler):
    name = "resume"
    description = "Resuming station"


class ShutdownOperationHandler(SimulatedOperationHandler):
    name = "shutdown"
    description = "Shutting down station"


DEFAULT_HANDLERS: tuple[type[SimulatedOperationHandler], ...] = (
    InitializeOperationHandler,
    StartOperationHandler,
    PalletArrivedOperationHandler,
    ScanPalletOperationHandler,
    ScanTankOperationHandler,
    BigbagEmptiedOperationHandler,
    TankChosenOperationHandler,
    PauseOperationHandler,
    ResumeOperationHandler,
    ShutdownOperationHandler,
)
