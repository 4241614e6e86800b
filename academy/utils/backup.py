import shutil
from datetime import date
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def backup_sqlite_database(source: Optional[str], backup_dir: str, today: Optional[date] = None) -> Optional[Path]:
    """
    Copy the SQLite database file to ``backup_dir/BackUp_(DD-MM-YYYY).db``.

    One backup per day; a later backup on the same day overwrites it.
    Returns the backup path, or None when there was nothing to copy.
    """
    if not source:
        logger.info("No file-backed database to back up")
        return None

    source_path = Path(source)
    if not source_path.exists():
        logger.warning(f"No source database found at {source_path}")
        return None

    target_dir = Path(backup_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    date_str = (today or date.today()).strftime("%d-%m-%Y")
    backup_path = target_dir / f"BackUp_({date_str}).db"

    shutil.copy2(source_path, backup_path)
    logger.info(f"Database backed up to {backup_path}")
    return backup_path
