"""Domain Layer: value objects, ports and error kinds.

Holds no I/O. Core services and infrastructure adapters depend on it,
never the other way round.
"""
