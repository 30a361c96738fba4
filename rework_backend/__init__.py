"""
Rework Station backend: state controller for choco rework stations.
"""
