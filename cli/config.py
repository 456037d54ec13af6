"""Configuration management for the file server CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path

from common.constants import DEFAULT_SERVER_PORT, DEFAULT_UPLOAD_CHUNK_SIZE_BYTES
from common.logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("APPSERVER_HOST", "localhost"),
        "server_port": int(os.environ.get("APPSERVER_PORT", str(DEFAULT_SERVER_PORT))),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "chunk_size": DEFAULT_UPLOAD_CHUNK_SIZE_BYTES,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.appserver/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.appserver' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Unreadable config file {self.config_path}, using defaults: {e}")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as backup_error:
                    logger.debug(f"Cannot back up config file: {backup_error}")
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError as e:
                logger.warning(f"Cannot write default config {self.config_path}: {e}")
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Cannot save config {self.config_path}: {e}")

    def get_base_url(self) -> str:
        """
        Get file server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:3000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', DEFAULT_SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> int:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }

    def get_chunk_size(self) -> int:
        """
        Get the number of bytes sent per upload request.

        Returns:
            Chunk size in bytes (at least 1)
        """
        return max(1, int(self.data.get('chunk_size', DEFAULT_UPLOAD_CHUNK_SIZE_BYTES)))

    def set_chunk_size(self, chunk_size: int) -> None:
        """
        Set upload chunk size and save to file.

        Args:
            chunk_size: Bytes per upload request
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.data['chunk_size'] = chunk_size
        self.save()
