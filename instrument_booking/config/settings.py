"""
Configuration and Feature Flags for the booking engine

Settings are read from environment variables once, at import time, so a
deployment can adjust paths, the selectable time grid and policy toggles
without code changes.

Usage:
    from instrument_booking.config.settings import is_enabled, identity_path

    if is_enabled('require_maintenance_ownership'):
        # Maintenance records become owner-gated like reservations
        ...

Environment Variables:
    BOOKING_IDENTITY_PATH=<path>          - Client identity file
    BOOKING_CATALOG_PATH=<path>           - Alternate instrument catalog (YAML)
    BOOKING_SLOT_START=HH:MM              - First selectable time (default 08:00)
    BOOKING_SLOT_END=HH:MM                - Last selectable time (default 18:00)
    BOOKING_SLOT_MINUTES=<int>            - Grid step in minutes (default 30)
    BOOKING_MAINTENANCE_OWNERSHIP=true/false
                                          - Gate maintenance edits/deletes to
                                            the creating identity
"""

import os
from pathlib import Path
from typing import Dict, Optional


PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_CATALOG_FILE = PACKAGE_DIR / "instrument_catalog.yaml"

# Wildcard instrument type shown as the "no filter" choice
ALL_INSTRUMENTS = "ALL"

# Joins device and sub-device into the composed device key
DEVICE_SEPARATOR = " - "

SLOT_START = os.getenv('BOOKING_SLOT_START', '08:00')
SLOT_END = os.getenv('BOOKING_SLOT_END', '18:00')
SLOT_MINUTES = int(os.getenv('BOOKING_SLOT_MINUTES', '30'))


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    # Observed behaviour leaves maintenance records ungated
    'require_maintenance_ownership': os.getenv('BOOKING_MAINTENANCE_OWNERSHIP', 'false').lower() == 'true',
}


def identity_path() -> Path:
    """Location of the persisted client identity.

    Returns:
        Path from BOOKING_IDENTITY_PATH, or ~/.instrument_booking/identity.json
    """
    override = os.getenv('BOOKING_IDENTITY_PATH')
    if override:
        return Path(override).expanduser()
    return Path.home() / ".instrument_booking" / "identity.json"


def catalog_path() -> Path:
    """Location of the instrument catalog YAML file."""
    override: Optional[str] = os.getenv('BOOKING_CATALOG_PATH')
    if override:
        return Path(override).expanduser()
    return DEFAULT_CATALOG_FILE


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'require_maintenance_ownership')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized

    Example:
        >>> is_enabled('require_maintenance_ownership')
        False  # Default
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """
    Get all feature flags and their current state.

    Returns:
        Dictionary of flag names to boolean values
    """
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Args:
        flag: Feature flag name
        enabled: True to enable, False to disable

    Warning:
        This is for testing only. In production, use environment variables.
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    FEATURE_FLAGS[flag] = enabled
