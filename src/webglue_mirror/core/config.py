from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

HOME_ENV = "WEBGLUE_MIRROR_HOME"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


@dataclass
class MirrorSettings:
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 40.0
    requests_per_second: float = 5.0
    max_body_bytes: int = 10 * 1024 * 1024
    # Rewrites every literal "http://" in the page, including text and scripts.
    upgrade_insecure: bool = True
    cache_backend: str = "memory"  # "memory" or "sqlite"
    cache_max_entries: int = 256

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MirrorSettings:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class AppPaths:
    app_dir: Path

    @property
    def config_path(self) -> Path:
        return self.app_dir / "config.json"

    @property
    def log_path(self) -> Path:
        return self.app_dir / "webglue_mirror.log"

    @property
    def cache_db_path(self) -> Path:
        return self.app_dir / "mirror_cache.sqlite3"

    @staticmethod
    def default() -> AppPaths:
        env = os.environ.get(HOME_ENV, "").strip()
        app_dir = Path(env).expanduser() if env else Path.home() / ".webglue_mirror"
        return AppPaths(app_dir=app_dir)


@dataclass
class AppConfig:
    paths: AppPaths
    mirror: MirrorSettings = field(default_factory=MirrorSettings)
    host: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def load(cls, paths: AppPaths | None = None) -> AppConfig:
        paths = paths or AppPaths.default()
        paths.app_dir.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {}
        if paths.config_path.exists():
            try:
                data = json.loads(paths.config_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable config %s (%s)", paths.config_path, e)
                data = {}
        return cls(
            paths=paths,
            mirror=MirrorSettings.from_dict(dict(data.get("mirror") or {})),
            host=str(data.get("host") or "127.0.0.1"),
            port=int(data.get("port") or 8080),
        )

    def save(self) -> None:
        self.paths.app_dir.mkdir(parents=True, exist_ok=True)
        payload = {"host": self.host, "port": self.port, "mirror": asdict(self.mirror)}
        self.paths.config_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
