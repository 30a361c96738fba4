"""
Pydantic models and enumerations of the rework station backend.
"""
