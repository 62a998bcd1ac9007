"""
Local JSON File Cache
Fallback snapshot of the claim ledger written to a single JSON file.
Source: https://anyio.readthedocs.io/en/stable/threads.html
"""

import json
import os
from pathlib import Path
from typing import Iterable

from anyio import to_thread

from src.schemas.claim import Claim
from src.services.persistence.base import LocalClaimCache
from src.utils.errors import PersistenceError, ValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class JsonFileClaimCache(LocalClaimCache):
    """
    Stores the claim collection as a JSON array of claim records.

    Blocking file I/O runs in a worker thread. Writes go to a temporary file
    that replaces the cache atomically.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load_all(self) -> list[Claim]:
        try:
            records = await to_thread.run_sync(self._read_sync)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading claim cache {self.path}: {e}")
            raise PersistenceError(f"Cannot read local claim cache: {e}") from e

        if not isinstance(records, list):
            raise PersistenceError("Local claim cache is corrupt: expected a list of claims")
        try:
            claims = [Claim.from_record(record) for record in records]
        except ValidationError as e:
            raise PersistenceError(f"Local claim cache is corrupt: {e}") from e

        logger.info(f"Loaded {len(claims)} claims from local cache")
        return claims

    async def save_all(self, claims: Iterable[Claim]) -> None:
        records = [claim.to_record() for claim in claims]
        try:
            await to_thread.run_sync(self._write_sync, records)
        except OSError as e:
            logger.error(f"Error writing claim cache {self.path}: {e}")
            raise PersistenceError(f"Cannot write local claim cache: {e}") from e
        logger.debug(f"Saved {len(records)} claims to local cache")

    # -------------------------------------------------------------------------
    # Blocking helpers (run via anyio.to_thread)
    # -------------------------------------------------------------------------

    def _read_sync(self) -> list:
        if not self.path.exists():
            return []
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        return json.loads(text)

    def _write_sync(self, records: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
