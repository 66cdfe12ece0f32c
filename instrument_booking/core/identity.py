"""Client identity provider.

Each installation owns one anonymous, stable identity. It is generated once,
persisted locally, and used only to authorize mutation of records the
client created. No network access is involved.

Usage:
    from instrument_booking.core.identity import FileIdentityProvider

    provider = FileIdentityProvider()          # path from settings
    identity = provider.get_or_create_identity()
"""

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from ..config.settings import identity_path
from .errors import IdentityError

logger = logging.getLogger(__name__)

IDENTITY_KEY = "client_id"


class IdentityProvider(ABC):
    """Source of the persistent client identity."""

    @abstractmethod
    def get_or_create_identity(self) -> str:
        """Return the persisted identity, creating it on first call.

        Returns:
            Identity string, identical for every call against the same
            persisted environment
        """
        pass


class StaticIdentityProvider(IdentityProvider):
    """Identity fixed at construction time."""

    def __init__(self, identity: str):
        if not identity:
            raise ValueError("Identity must be a non-empty string")
        self._identity = identity

    def get_or_create_identity(self) -> str:
        return self._identity


class FileIdentityProvider(IdentityProvider):
    """Identity persisted as JSON in a local file.

    The file holds ``{"client_id": "<uuid4>"}``. A missing file is created
    on first use; an existing file that cannot be parsed raises
    IdentityError instead of minting a replacement, which would orphan
    every record the client already owns.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path is not None else identity_path()
        self._identity: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_or_create_identity(self) -> str:
        with self._lock:
            if self._identity is None:
                self._identity = self._read() or self._create()
            return self._identity

    def _read(self) -> Optional[str]:
        if not self._path.exists():
            return None

        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise IdentityError(f"Cannot read client identity from {self._path}: {e}") from e

        value = data.get(IDENTITY_KEY) if isinstance(data, dict) else None
        if not isinstance(value, str) or not value:
            raise IdentityError(f"{self._path} does not contain a '{IDENTITY_KEY}' value")

        logger.debug(f"Loaded client identity from {self._path}")
        return value

    def _create(self) -> str:
        value = str(uuid.uuid4())
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, 'w', encoding='utf-8') as f:
            json.dump({IDENTITY_KEY: value}, f, indent=2, sort_keys=True)

        logger.info(f"Created client identity {value[:8]}... at {self._path}")
        return value
