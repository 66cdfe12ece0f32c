"""
Instrument booking engine.

Time-bounded reservations and maintenance/blackout records for a shared pool
of instruments, with per-device conflict detection, ownership-gated
mutation, and full-snapshot synchronization between clients.
"""

__version__ = "0.1.0"
