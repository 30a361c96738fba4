"""
Services module - Business logic orchestration layer.

- state_machines: transition table, state machine core, diagram rendering
- operations: operation handlers and their registry
- station_controller: per-station controller (trigger, info, diagram)
- station_service: station record queries and status override
- station_lock_service / station_event_service: Redis lock and notifications
"""
