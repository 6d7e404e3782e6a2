from __future__ import annotations
import json
import logging
import shutil
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.constants import INSPECTIONS_FILE, PERMITS_FILE
from src.schema import PERMITS, Record, RecordSchema
from src.schema_validate import validate
from src.settings import DEFAULT_DATA_DIR

logger = logging.getLogger(__name__)

DEMO_SEED_DIRNAME = "demo_seed"

Store = Tuple[Record, ...]


def records_filename(schema: RecordSchema) -> str:
    return PERMITS_FILE if schema is PERMITS else INSPECTIONS_FILE


def records_path(schema: RecordSchema, data_dir: Optional[Path] = None) -> Path:
    return Path(data_dir or DEFAULT_DATA_DIR) / records_filename(schema)


def _jsonl_has_rows(path: Path) -> bool:
    if not path.exists():
        return False
    try:
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    return True
    except OSError:
        return False
    return False


def _bootstrap_demo_seed_if_needed(schema: RecordSchema, data_dir: Path) -> None:
    # Auto-seed demo data only when the live file is empty or missing.
    live = records_path(schema, data_dir)
    if _jsonl_has_rows(live):
        return
    seed = data_dir / DEMO_SEED_DIRNAME / records_filename(schema)
    if not seed.exists():
        return
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(seed, live)
    except OSError as e:
        logger.warning("Could not seed %s from %s: %s", live, seed, e)
        return
    logger.info("Seeded %s from %s", live, seed)


def read_jsonl(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        return []
    rows = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("%s:%d skipped malformed line (%s)", path.name, lineno, e.msg)
                continue
            if not isinstance(row, dict):
                logger.warning("%s:%d skipped non-object line", path.name, lineno)
                continue
            rows.append(row)
    return rows


def write_jsonl(path: Path, records: Iterable[Dict[str, Any]]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    n = 0
    with path.open("w", encoding="utf-8") as f:
        for r in records:
            f.write(json.dumps(r, ensure_ascii=False) + "\n")
            n += 1
    return n


def load_records(
    schema: RecordSchema,
    data_dir: Optional[Path] = None,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Valid records plus one error line per record that failed validation."""
    data_dir = Path(data_dir or DEFAULT_DATA_DIR)
    _bootstrap_demo_seed_if_needed(schema, data_dir)
    path = records_path(schema, data_dir)
    rows: List[Dict[str, Any]] = []
    errors: List[str] = []
    for idx, rec in enumerate(read_jsonl(path)):
        ok, errs = validate(rec, schema)
        if not ok:
            rid = rec.get(schema.id_field) or f"#{idx}"
            msg = f"{schema.name} {rid}: " + "; ".join(errs)
            logger.warning("Skipped invalid record %s", msg)
            errors.append(msg)
            continue
        rows.append(rec)
    logger.debug("Loaded %d %s from %s (%d skipped)", len(rows), schema.name, path, len(errors))
    return rows, errors


def freeze(records: Iterable[Dict[str, Any]]) -> Store:
    return tuple(MappingProxyType(dict(r)) for r in records)


def load_store(schema: RecordSchema, data_dir: Optional[Path] = None, strict: bool = False) -> Store:
    """Load once into an immutable store; ``strict`` raises instead of skipping invalid records."""
    rows, errors = load_records(schema, data_dir)
    if strict and errors:
        raise ValueError(f"{len(errors)} invalid {schema.name} record(s):\n" + "\n".join(errors))
    return freeze(rows)
