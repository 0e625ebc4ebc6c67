"""
Committee Persistence Module

Saves the committee state (agendas, roster, parameters, ownership) as one
JSON document. Writes are atomic and thread safe.
"""

import json
import logging
import os
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Any

logger = logging.getLogger(__name__)

STATE_FILENAME = "committee.json"
STATE_VERSION = "1.0"


class CommitteePersistence:
    """Committee state persistence

    Attributes:
        data_dir: Directory holding the state file and backups
        _lock: Write lock
    """

    def __init__(self, data_dir=None):
        self.data_dir = Path(data_dir or "data/committee")
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir = self.data_dir / "backups"
        self._lock = threading.Lock()

    @property
    def state_path(self) -> Path:
        return self.data_dir / STATE_FILENAME

    def exists(self) -> bool:
        return self.state_path.exists()

    def save(self, state: Dict[str, Any]) -> bool:
        """Write state atomically

        The document goes to a temp file first and is renamed over the
        previous one, so a crash leaves either the old or the new state.

        Returns:
            True on success, False on failure
        """
        with self._lock:
            file_path = self.state_path
            temp_path = file_path.with_suffix('.tmp')
            try:
                data = dict(state)
                data['_metadata'] = {
                    'saved_at': datetime.now(timezone.utc).isoformat(),
                    'version': STATE_VERSION,
                }

                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(temp_path, file_path)

                logger.debug(f"Saved committee state to {file_path}")
                return True

            except (IOError, OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to save committee state: {e}")
                try:
                    if temp_path.exists():
                        temp_path.unlink()
                except OSError:
                    pass
                return False

    def load(self) -> Optional[Dict[str, Any]]:
        """Load state, None if nothing has been saved yet"""
        file_path = self.state_path
        if not file_path.exists():
            logger.info(f"No committee state found at {file_path}")
            return None

        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        data.pop('_metadata', None)
        logger.info(f"Loaded committee state from {file_path}")
        return data

    def create_backup(self, tag: Optional[str] = None) -> Optional[Path]:
        """Copy the current state file into the backup directory"""
        if not self.exists():
            return None
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        tag_suffix = f"_{tag}" if tag else ""
        backup_path = self.backup_dir / f"backup_{timestamp}{tag_suffix}.json"

        try:
            self.backup_dir.mkdir(exist_ok=True)
            shutil.copy2(self.state_path, backup_path)
            logger.info(f"Created backup at {backup_path}")
            return backup_path
        except OSError as e:
            logger.error(f"Failed to create backup: {e}")
            return None

    def list_backups(self) -> List[Path]:
        """List available backups, newest first"""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob("backup_*.json"), reverse=True)
