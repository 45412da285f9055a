"""
Database snapshots.

A backup is a JSON document holding every row of every table, written to
BACKUP_DIR (default: <instance path>/backups). Each attempt is recorded in
the backups table; a failed write is recorded with its error.
"""

from __future__ import annotations

import json
import os

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Backup
from ..models.settings import BACKUP_TYPES
from ..time_utils import to_utc_z, utcnow


def backup_dir() -> str:
    return current_app.config.get("BACKUP_DIR") or os.path.join(current_app.instance_path, "backups")


def _snapshot() -> dict:
    tables = {}
    for table in db.metadata.sorted_tables:
        if table.name == "backups":
            continue
        rows = db.session.execute(table.select()).mappings().all()
        tables[table.name] = [dict(row) for row in rows]
    return {"createdAt": to_utc_z(utcnow()), "tables": tables}


def list_backups() -> tuple[list[Backup], dict]:
    backups = db.session.query(Backup).order_by(Backup.created_at.desc(), Backup.id.desc()).all()
    stats = {
        "total": len(backups),
        "successful": sum(1 for b in backups if b.status == "SUCCESS"),
        "failed": sum(1 for b in backups if b.status == "FAILED"),
        "totalSize": sum(b.size_bytes for b in backups),
    }
    return backups, stats


def create_backup(*, backup_type=None, created_by_user_id: int | None = None) -> Backup:
    """
    Write a snapshot and record it.

    Returns the Backup row; its status is FAILED when the file could not be
    written.
    """
    backup_type = "MANUAL" if backup_type is None else backup_type
    if not isinstance(backup_type, str) or backup_type.strip().upper() not in BACKUP_TYPES:
        raise ValidationError(
            "Invalid backup type",
            details=[{"field": "type", "message": f"type must be one of: {', '.join(BACKUP_TYPES)}"}],
        )
    backup_type = backup_type.strip().upper()

    stamp = utcnow().strftime("%Y%m%d_%H%M%S_%f")
    file_name = f"backup_{stamp}_{backup_type.lower()}.json"
    backup = Backup(file_name=file_name, type=backup_type, created_by_user_id=created_by_user_id)

    payload = json.dumps(_snapshot(), default=str, indent=1).encode("utf-8")
    directory = backup_dir()
    try:
        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, file_name), "wb") as fh:
            fh.write(payload)
    except OSError as exc:
        current_app.logger.exception("Backup %s could not be written to %s", file_name, directory)
        backup.status = "FAILED"
        backup.error = str(exc)
        backup.size_bytes = 0
    else:
        backup.status = "SUCCESS"
        backup.size_bytes = len(payload)

    db.session.add(backup)
    db.session.commit()
    current_app.logger.info("Backup %s recorded (%s, %d bytes)", file_name, backup.status, backup.size_bytes)
    return backup


def delete_backup(backup_id: int) -> None:
    """Remove the record and its file; a file that is already gone is not an error."""
    backup = db.session.get(Backup, backup_id)
    if backup is None:
        raise NotFoundError("Backup")

    path = os.path.join(backup_dir(), backup.file_name)
    try:
        os.remove(path)
    except FileNotFoundError:
        current_app.logger.warning("Backup file %s was already missing", path)

    db.session.delete(backup)
    db.session.commit()
