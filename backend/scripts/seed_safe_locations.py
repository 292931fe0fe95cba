"""Seed the safe meeting-point catalog.

Typical usage:
	python -m scripts.seed_safe_locations            # upsert the default catalog
	python -m scripts.seed_safe_locations --file locations.json

The JSON file must hold a list of objects with id, name, lat, lng and an
optional address. List order becomes catalog order.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

import asyncpg

from walkbuddy.domain.matching.exceptions import StoreUnavailable
from walkbuddy.domain.matching.models import SafeLocation
from walkbuddy.domain.matching.repo import DEFAULT_SAFE_LOCATIONS, PostgresSafeLocationCatalog, ensure_schema
from walkbuddy.infra.postgres import close_pool


def _load(path: Optional[str]) -> list[SafeLocation]:
	if not path:
		return list(DEFAULT_SAFE_LOCATIONS)
	raw = json.loads(Path(path).read_text(encoding="utf-8"))
	return [SafeLocation.model_validate(item) for item in raw]


async def _seed(locations: Sequence[SafeLocation]) -> int:
	try:
		await ensure_schema()
		return await PostgresSafeLocationCatalog().upsert_many(locations)
	finally:
		await close_pool()


def main(argv: Optional[Sequence[str]] = None) -> int:
	parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
	parser.add_argument("--file", help="JSON file with safe locations (defaults to the built-in catalog)")
	args = parser.parse_args(argv)
	locations = _load(args.file)
	try:
		count = asyncio.run(_seed(locations))
	except (StoreUnavailable, asyncpg.PostgresError) as exc:
		print(f"seeding failed: {exc}", file=sys.stderr)
		return 1
	print(f"seeded {count} safe locations")
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
