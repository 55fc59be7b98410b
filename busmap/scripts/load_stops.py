#!/usr/bin/env python3
"""
Import bus stops from an OpenStreetMap-style JSON export into the stops table.

Each record looks like::

    {"id": 101, "lat": 21.02, "lon": 105.85,
     "tags": {"name": "Bến xe Kim Mã", "bench": "yes", "shelter": "no", "wheelchair": "yes"}}

Records without an id, coordinates or a name are skipped. Existing stops with
the same id are overwritten, so the import can be re-run safely.

Usage:
    python -m busmap.scripts.load_stops [path/to/stop.json]
"""

import json
import logging
import sys
from pathlib import Path

import pandas as pd
from sqlalchemy.orm import Session

from ..config import settings
from ..database import database_session_manager
from ..v1.crud.stops import upsert_stops

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("load_stops")

COLUMN_MAP = {
    "lat": "latitude",
    "lon": "longitude",
    "tags.name": "name",
    "tags.bench": "bench",
    "tags.shelter": "shelter",
    "tags.wheelchair": "wheelchair_access",
}
STOP_COLUMNS = ["id", "latitude", "longitude", "name", "bench", "shelter", "wheelchair_access"]
REQUIRED_COLUMNS = ["id", "latitude", "longitude", "name"]
WHEELCHAIR_VALUES = {"yes": True, "limited": True, "no": False}


def read_stops(path: Path) -> pd.DataFrame:
    """Read and flatten the stop export into one row per stop, matching the stops table."""
    with open(path, encoding="utf-8") as f:
        records = json.load(f)

    df = pd.json_normalize(records).rename(columns=COLUMN_MAP)
    for column in STOP_COLUMNS:
        if column not in df.columns:
            df[column] = None

    before = len(df)
    df = df.dropna(subset=REQUIRED_COLUMNS)
    df = df[df["name"].astype(str).str.strip() != ""]
    if len(df) < before:
        log.warning("Skipping %d stops without id, coordinates or name", before - len(df))

    df = df[STOP_COLUMNS].copy()
    df["id"] = df["id"].astype(int)
    df["wheelchair_access"] = df["wheelchair_access"].map(
        lambda value: WHEELCHAIR_VALUES.get(str(value).strip().lower()) if value is not None else None
    )
    df = df.drop_duplicates(subset="id", keep="last")

    # NaN is not a valid SQL value
    return df.astype(object).where(pd.notnull(df), None)


def load_stops(db: Session, path: Path) -> int:
    """Load the stop file at ``path`` in a single transaction and return the number of stops written."""
    log.info("Reading stops from %s", path)
    df = read_stops(path)

    try:
        count = upsert_stops(db, df.to_dict("records"))
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("Loaded %d stops", count)
    return count


def main():
    path = Path(sys.argv[1] if len(sys.argv) > 1 else settings.stops_file)
    if not path.exists():
        raise FileNotFoundError(f"Stop file not found: {path.resolve()}")

    db = database_session_manager.SessionLocal()
    try:
        load_stops(db, path)
    finally:
        db.close()


if __name__ == "__main__":
    main()
