from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_RUNTIME_CONFIG = Path("configs/runtime.yaml")


@dataclass
class RuntimeConfig:
    classifier: Dict[str, Any] = field(default_factory=dict)
    session: Dict[str, Any] = field(default_factory=dict)
    history: Dict[str, Any] = field(default_factory=dict)
    storage: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)

    @property
    def k(self) -> int:
        return int(self.classifier.get("k", 5))

    @property
    def stabilization_window(self) -> int:
        return int(self.session.get("stabilization_window", 8))

    @property
    def min_confidence(self) -> float:
        return float(self.session.get("min_confidence", 0.45))

    @property
    def default_hold_goal(self) -> float:
        return float(self.session.get("default_hold_goal", 30))

    @property
    def history_capacity(self) -> int:
        return int(self.history.get("capacity", 15))

    @property
    def database_url(self) -> Optional[str]:
        return self.storage.get("database_url")

    @property
    def log_level(self) -> str:
        return str(self.logging.get("level", "INFO"))


def load_runtime_config(path: Optional[str | Path] = None) -> RuntimeConfig:
    """Read the YAML runtime config; a missing file yields the defaults."""
    config_path = Path(path) if path is not None else DEFAULT_RUNTIME_CONFIG
    if not config_path.is_file():
        return RuntimeConfig()
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return RuntimeConfig(
        classifier=data.get("classifier") or {},
        session=data.get("session") or {},
        history=data.get("history") or {},
        storage=data.get("storage") or {},
        logging=data.get("logging") or {},
    )
