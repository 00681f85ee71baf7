from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping
import logging

import yaml

from .repository import BookingRepository, ResourceRepository
from .validation import validate_payload

logger = logging.getLogger(__name__)

# parents before children so the existence checks pass
SEED_ORDER = ("categories", "products", "users", "bookings", "lockers", "orders", "ordered_products")


class SeedError(ValueError):
    pass


def load_seed_file(path: str | Path) -> dict[str, list[dict[str, Any]]]:
    """Read a demo-data fixture keyed by resource name."""
    try:
        payload = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except yaml.YAMLError as error:
        raise SeedError(f"Seed file {path} is not valid YAML") from error

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise SeedError(f"Seed file {path} must map resource names to lists")

    unknown = sorted(set(payload) - set(SEED_ORDER))
    if unknown:
        raise SeedError(f"Unknown resources in seed file: {', '.join(unknown)}")
    return {name: list(rows or []) for name, rows in payload.items()}


def seed_repositories(
    repositories: Mapping[str, ResourceRepository],
    data: Mapping[str, list[dict[str, Any]]],
    now: datetime | None = None,
) -> dict[str, int]:
    """Push fixture rows through the same validation and checks as the API.

    Returns the number of rows created per resource.
    """
    now = now or datetime.now()
    created: dict[str, int] = {}
    for name in SEED_ORDER:
        rows = data.get(name) or []
        repository = repositories[name]
        for row in rows:
            values = validate_payload(repository.entity.fields, row, now=now)
            if isinstance(repository, BookingRepository):
                repository.create_booking(values)
            else:
                repository.create(values)
        created[name] = len(rows)
        if rows:
            logger.info("Seeded %d %s", len(rows), name)
    return created
