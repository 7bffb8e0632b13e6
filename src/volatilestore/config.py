"""Storage configuration management."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from volatilestore.locking import DEFAULT_LOCK_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY = Path(__file__).resolve().parent / "storage"
DEFAULT_FILE_EXTENSION = ".cache"
DEFAULT_DIR_MODE = 0o750

# Option names accepted by from_options, mapped to dataclass fields
OPTION_ALIASES = {
    "directory": "directory",
    "fileExtension": "file_extension",
    "file_extension": "file_extension",
    "lock_timeout": "lock_timeout",
    "lockTimeout": "lock_timeout",
    "dir_mode": "dir_mode",
    "sweep_on_start": "sweep_on_start",
}


@dataclass
class StorageConfig:
    """Configuration for a volatile storage directory.

    Attributes:
        directory: Directory holding one record file per key. Defaults to a
            ``storage`` directory next to this package.
        file_extension: Suffix of record files (".cache")
        lock_timeout: Seconds to wait for a per-key lock; negative waits forever
        dir_mode: Permission bits used when creating the directory
        sweep_on_start: Remove expired records when the storage is constructed
    """

    directory: Path = field(default_factory=lambda: DEFAULT_DIRECTORY)
    file_extension: str = DEFAULT_FILE_EXTENSION
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    dir_mode: int = DEFAULT_DIR_MODE
    sweep_on_start: bool = True

    def __post_init__(self):
        """Normalize directory to an expanded Path and the extension to '.ext'."""
        if self.directory is None:
            self.directory = DEFAULT_DIRECTORY
        self.directory = Path(self.directory).expanduser()

        if self.file_extension is None:
            self.file_extension = DEFAULT_FILE_EXTENSION
        if self.file_extension and not self.file_extension.startswith("."):
            self.file_extension = "." + self.file_extension

    @classmethod
    def from_options(
        cls, options: Optional[Mapping[str, Any]] = None
    ) -> "StorageConfig":
        """Create configuration from an options mapping.

        Recognized options: ``directory``, ``fileExtension`` (or
        ``file_extension``), ``lock_timeout``, ``dir_mode``, ``sweep_on_start``.
        Anything else is ignored.

        Args:
            options: Option mapping (None for all defaults)

        Returns:
            StorageConfig instance

        Examples:
            >>> config = StorageConfig.from_options({"fileExtension": "pev"})
            >>> config.file_extension
            '.pev'
        """
        kwargs = {}
        for name, value in (options or {}).items():
            target = OPTION_ALIASES.get(name)
            if target is None:
                logger.debug(f"Ignoring unrecognized storage option: {name}")
                continue
            kwargs[target] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Create configuration from environment variables.

        Environment variables:
            VOLATILESTORE_DIR: Storage directory path
            VOLATILESTORE_EXT: Record file extension
            VOLATILESTORE_LOCK_TIMEOUT: Lock timeout in seconds

        Returns:
            StorageConfig instance
        """
        config = cls()

        if os.getenv("VOLATILESTORE_DIR"):
            config.directory = Path(os.getenv("VOLATILESTORE_DIR")).expanduser()

        if os.getenv("VOLATILESTORE_EXT"):
            config.file_extension = os.getenv("VOLATILESTORE_EXT")
            if not config.file_extension.startswith("."):
                config.file_extension = "." + config.file_extension

        if os.getenv("VOLATILESTORE_LOCK_TIMEOUT"):
            config.lock_timeout = float(os.getenv("VOLATILESTORE_LOCK_TIMEOUT"))

        return config
