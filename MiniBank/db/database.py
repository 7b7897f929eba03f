"""
Storage Configuration and File Management
Handles flat-file persistence for the MiniBank ledger system
"""

import os
import shutil
import tempfile
from typing import List, Optional
import logging
from contextlib import contextmanager
from datetime import datetime

from utils.exceptions import PersistenceException

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BACKUP_DIR_NAME = 'backups'

class StorageConfig:
    """Storage configuration management"""

    def __init__(self, data_dir: str = None):
        self.config = {
            'data_dir': data_dir or os.getenv('MINIBANK_DATA_DIR', 'data'),
            'encoding': os.getenv('MINIBANK_ENCODING', 'utf-8'),
            'session_timeout_minutes': int(os.getenv('MINIBANK_SESSION_TIMEOUT_MINUTES', 5)),
            'transactions_dir': 'transactions'
        }

        self._initialize_directory()

    @property
    def data_dir(self) -> str:
        return self.config['data_dir']

    @property
    def encoding(self) -> str:
        return self.config['encoding']

    @property
    def session_timeout_minutes(self) -> int:
        return self.config['session_timeout_minutes']

    @property
    def transactions_dir(self) -> str:
        return self.config['transactions_dir']

    def _initialize_directory(self):
        """Create the data directory if it does not exist yet"""
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            logger.info(f"Data directory ready at {self.data_dir}")
        except OSError as e:
            logger.error(f"Error creating data directory: {e}")
            raise PersistenceException(f"Cannot create data directory: {e}")

    def path_for(self, filename: str) -> str:
        """Absolute path of a data file (may include a subdirectory)"""
        return os.path.join(self.data_dir, filename)

class FileManager:
    """Flat-file operations manager"""

    def __init__(self, config: StorageConfig = None):
        self.config = config or StorageConfig()

    def exists(self, filename: str) -> bool:
        return os.path.exists(self.config.path_for(filename))

    def read_lines(self, filename: str) -> List[str]:
        """Read every line of a data file; a missing file reads as empty"""
        path = self.config.path_for(filename)
        if not os.path.exists(path):
            return []
        try:
            with open(path, 'r', encoding=self.config.encoding) as f:
                return [line.rstrip('\r\n') for line in f]
        except OSError as e:
            logger.error(f"Error reading {path}: {e}")
            raise PersistenceException(f"Failed to read {filename}: {str(e)}")

    @contextmanager
    def get_writer(self, filename: str):
        """Context manager for a full-file rewrite.

        Lines go to a temp file next to the target and replace it only when
        the block exits cleanly, so readers never see a half-written file.
        """
        path = self.config.path_for(filename)
        tmp_path = None
        try:
            os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path) or '.', suffix='.tmp')
            with os.fdopen(fd, 'w', encoding=self.config.encoding, newline='\n') as f:
                yield f
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            logger.error(f"Write error on {path}: {e}")
            raise PersistenceException(f"Failed to write {filename}: {str(e)}")
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def write_lines(self, filename: str, lines: List[str]):
        """Rewrite a data file with the given lines"""
        with self.get_writer(filename) as f:
            for line in lines:
                f.write(line + '\n')

    def append_line(self, filename: str, line: str):
        """Append a single line, creating the file (and its folder) if needed"""
        self.append_lines(filename, [line])

    def append_lines(self, filename: str, lines: List[str]):
        """Append lines in one write, creating the file (and its folder) if needed"""
        path = self.config.path_for(filename)
        try:
            os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
            with open(path, 'a', encoding=self.config.encoding, newline='\n') as f:
                f.write(''.join(line + '\n' for line in lines))
        except OSError as e:
            logger.error(f"Append error on {path}: {e}")
            raise PersistenceException(f"Failed to append to {filename}: {str(e)}")

    def list_files(self, subdir: str, suffix: str = '.txt') -> List[str]:
        """List data files (relative names) inside a subdirectory"""
        folder = self.config.path_for(subdir)
        if not os.path.isdir(folder):
            return []
        return sorted(
            os.path.join(subdir, name) for name in os.listdir(folder)
            if name.endswith(suffix)
        )

    def backup(self, label: Optional[str] = None) -> str:
        """Copy every data file into a timestamped backup folder"""
        label = label or datetime.now().strftime("backup_%Y%m%d_%H%M%S")
        target = os.path.join(self.config.data_dir, BACKUP_DIR_NAME, label)
        try:
            shutil.copytree(
                self.config.data_dir,
                target,
                ignore=shutil.ignore_patterns(BACKUP_DIR_NAME, '*.tmp')
            )
            logger.info(f"Backed up data files to {target}")
            return target
        except OSError as e:
            logger.error(f"Backup failed: {e}")
            raise PersistenceException(f"Backup failed: {str(e)}")

    def delete_all(self):
        """Remove every data file except backups"""
        root = self.config.data_dir
        try:
            for name in os.listdir(root):
                if name == BACKUP_DIR_NAME:
                    continue
                path = os.path.join(root, name)
                if os.path.isdir(path):
                    shutil.rmtree(path)
                else:
                    os.remove(path)
            logger.warning(f"All data files removed from {root}")
        except OSError as e:
            logger.error(f"Error deleting data files: {e}")
            raise PersistenceException(f"Failed to delete data: {str(e)}")
