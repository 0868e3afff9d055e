# Taskboard: configuration
# Override settings via taskboard.yaml, environment variables or CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

CONFIG_PATH = Path.cwd() / "taskboard.yaml"

STORAGE_BACKENDS = ("memory", "sqlite")


@dataclass
class TrackerConfig:
    """Runtime configuration for the tracker and its HTTP adapter."""

    # Persistence
    storage: str = "memory"        # "memory" | "sqlite"
    db_path: str = "~/.local/share/taskboard/taskboard.db"
    key_prefix: str = "pm_"

    # Logging
    log_level: str = "INFO"

    # HTTP adapter
    host: str = "127.0.0.1"
    port: int = 3000

    def resolve(self):
        """Apply environment overrides, expand ~ and check the backend name."""
        env_db = os.environ.get("TASKBOARD_DB")
        if env_db:
            self.db_path = env_db
            self.storage = "sqlite"
        env_level = os.environ.get("TASKBOARD_LOG_LEVEL")
        if env_level:
            self.log_level = env_level

        self.db_path = str(Path(self.db_path).expanduser())
        self.log_level = self.log_level.upper()
        if self.storage not in STORAGE_BACKENDS:
            raise ValueError(f"Invalid storage backend: {self.storage}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "TrackerConfig":
        """Load config from a YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            with open(cfg_path, "r") as f:
                data = yaml.safe_load(f) or {}
            cfg = cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        else:
            cfg = cls()
        cfg.resolve()
        return cfg
