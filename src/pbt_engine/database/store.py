"""Regression database: failing replay tokens keyed by property name, stored as JSONL."""

from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel

from pbt_engine.engine.schema import ReplayToken


class DatabaseEntry(BaseModel):
    property_name: str
    token: str


class ExampleDatabase:
    """Remembers failing trials so later runs replay them before fresh trials."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> List[DatabaseEntry]:
        if not self.path.exists():
            return []
        entries: List[DatabaseEntry] = []
        with open(self.path) as f:
            for line in f:
                line = line.strip()
                if line:
                    entries.append(DatabaseEntry.model_validate_json(line))
        return entries

    def _write(self, entries: List[DatabaseEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            for entry in entries:
                f.write(entry.model_dump_json() + "\n")

    def fetch(self, property_name: str) -> List[ReplayToken]:
        return [
            ReplayToken.decode(e.token) for e in self._load() if e.property_name == property_name
        ]

    def save(self, property_name: str, token: ReplayToken) -> None:
        entries = self._load()
        entry = DatabaseEntry(property_name=property_name, token=token.encode())
        if entry in entries:
            return
        entries.append(entry)
        self._write(entries)
        logger.info(f"Stored replay token {entry.token} for {property_name}")

    def delete(self, property_name: str, token: ReplayToken) -> None:
        encoded = token.encode()
        entries = self._load()
        kept = [e for e in entries if not (e.property_name == property_name and e.token == encoded)]
        if len(kept) != len(entries):
            self._write(kept)
            logger.info(f"Removed replay token {encoded} for {property_name}")

    def clear(self, property_name: Optional[str] = None) -> int:
        """Remove all entries, or only those of ``property_name``. Returns the count removed."""
        entries = self._load()
        kept = [] if property_name is None else [e for e in entries if e.property_name != property_name]
        self._write(kept)
        removed = len(entries) - len(kept)
        logger.info(f"Cleared {removed} entries from {self.path}")
        return removed

    def summary(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for entry in self._load():
            grouped.setdefault(entry.property_name, []).append(entry.token)
        return grouped
