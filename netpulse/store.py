"""
Store: the persisted list of check records.

A plain JSON document ``{"version": 1, "checks": [...]}`` parsed with
Pydantic. The analysis only ever sees ``Store.checks()``, a read-only
snapshot.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, ValidationError

from netpulse.errors import StoreDoesNotExistError, StoreLoadError, UnsupportedVersionError
from netpulse.models import CheckRecord

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1
SUPPORTED_VERSIONS: frozenset[int] = frozenset({CURRENT_VERSION})


class StoreDocument(BaseModel):
    """On-disk layout of the store."""
    version: int = CURRENT_VERSION
    checks: list[CheckRecord] = Field(default_factory=list)


class Store:
    """
    In-memory copy of the store file.

    Usage:
        store = Store.load(path)
        records = store.checks()
        store.add_checks(new_records)
        store.save()
    """

    def __init__(self, path: Path, document: StoreDocument | None = None) -> None:
        self.path = Path(path)
        self._document = document if document is not None else StoreDocument()

    # ------------------------------------------------------------------
    # Loading / saving
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, path: Path) -> Store:
        """Write a new, empty store to ``path``."""
        store = cls(path)
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.save()
        logger.info("Created new store at %s", store.path)
        return store

    @classmethod
    def load(cls, path: Path) -> Store:
        path = Path(path)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise StoreDoesNotExistError(path) from exc
        except OSError as exc:
            raise StoreLoadError(f"could not read the store at {path}: {exc}") from exc

        try:
            document = StoreDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreLoadError(f"could not parse the store at {path}: {exc}") from exc

        if document.version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersionError(document.version)

        logger.debug("Loaded %d checks from %s", len(document.checks), path)
        return cls(path, document)

    @classmethod
    def load_or_create(cls, path: Path) -> Store:
        try:
            return cls.load(path)
        except StoreDoesNotExistError:
            return cls.create(path)

    def save(self) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(self._document.model_dump_json(), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("Saved %d checks to %s", len(self._document.checks), self.path)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_checks(self, records: Iterable[CheckRecord]) -> None:
        self._document.checks.extend(records)

    def checks(self) -> tuple[CheckRecord, ...]:
        return tuple(self._document.checks)

    @property
    def version(self) -> int:
        return self._document.version

    def file_size(self) -> int:
        return self.path.stat().st_size
