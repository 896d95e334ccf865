"""Integrity checks for the regression database."""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from pbt_engine.database.store import DatabaseEntry
from pbt_engine.engine.schema import ReplayToken
from pbt_engine.errors import InvalidArgument


class DatabaseVerifier:  # A
    """Verifies that a regression database file can be loaded and replayed."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def verify_jsonl_integrity(self) -> tuple[int, list[str]]:
        """Verify every line is a valid entry with a decodable replay token.

        Returns:
            (valid_count, list_of_error_messages)
        """
        if not self.path.exists():
            return 0, [f"File not found: {self.path}"]

        valid = 0
        errors = []
        with open(self.path) as f:
            for i, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = DatabaseEntry.model_validate(json.loads(line))
                    ReplayToken.decode(entry.token)
                    valid += 1
                except json.JSONDecodeError as e:
                    errors.append(f"Line {i}: {e}")
                except (ValidationError, InvalidArgument) as e:
                    errors.append(f"Line {i}: invalid entry: {e}")
        return valid, errors

    def find_duplicates(self) -> list[str]:
        """Report entries stored more than once."""
        if not self.path.exists():
            return []
        seen: set[str] = set()
        issues = []
        with open(self.path) as f:
            for i, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                if line in seen:
                    issues.append(f"Line {i}: duplicate entry {line}")
                seen.add(line)
        return issues

    def run_all_checks(self) -> dict:
        """Run all database checks."""
        count, errors = self.verify_jsonl_integrity()
        duplicates = self.find_duplicates()
        results = {
            "entries": {"valid_entries": count, "errors": errors, "ok": len(errors) == 0},
            "duplicates": {"issues": duplicates, "ok": len(duplicates) == 0},
        }
        all_ok = all(v["ok"] for v in results.values())
        logger.info(f"Database verification: {'PASS' if all_ok else 'FAIL'}")
        return results
