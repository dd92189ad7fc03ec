"""Configuration loader for database, security and logging settings."""

from __future__ import annotations

import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class DatabaseConfig:
    path: str
    key_env: str
    allow_sqlite_fallback: bool
    busy_timeout_ms: int = 5000


@dataclass(frozen=True)
class SecurityConfig:
    hash_n: int = 2**14
    hash_r: int = 8
    hash_p: int = 1


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "pretty"
    retention_days: int = 1095


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig
    security: SecurityConfig
    logging: LoggingConfig


DEFAULT_CONFIG_REL_PATH = Path("config/ledger.yaml")
DEFAULT_DB_KEY_ENV = "LEDGER_DB_KEY"
RUNTIME_ENV_REL_PATH = Path("config/runtime.env")
_RUNTIME_ENV_LOADED = False


def _split_key_value(raw_line: str) -> tuple[str, str] | None:
    """Parse a shell or PowerShell key assignment line."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None

    if line.startswith("$env:"):
        line = line[len("$env:") :]
    elif line.startswith("export "):
        line = line[len("export ") :]

    if "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
        return None

    if (value.startswith("'") and value.endswith("'")) or (
        value.startswith('"') and value.endswith('"')
    ):
        value = value[1:-1]

    return key, value


def _runtime_root() -> Path:
    """Return writable root for runtime env creation."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[3]


def _iter_env_candidates() -> list[Path]:
    """Return candidate files that may contain runtime keys."""
    roots: list[Path] = [Path.cwd(), _runtime_root()]

    unique: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        for path in (root / ".env.local", root / RUNTIME_ENV_REL_PATH):
            resolved = path.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            unique.append(resolved)
    return unique


def _load_env_from_file(path: Path) -> None:
    """Load KEY=VALUE lines from a local file into process environment."""
    if not path.exists() or not path.is_file():
        return
    with path.open("r", encoding="utf-8") as file:
        for line in file:
            parsed = _split_key_value(line)
            if not parsed:
                continue
            key, value = parsed
            if key not in os.environ:
                os.environ[key] = value


def _ensure_runtime_env_loaded() -> None:
    """Load local env files once per process."""
    global _RUNTIME_ENV_LOADED
    if _RUNTIME_ENV_LOADED:
        return
    for path in _iter_env_candidates():
        _load_env_from_file(path)
    _RUNTIME_ENV_LOADED = True


def _bootstrap_db_key(key_env: str, config_db_path: str | None = None) -> None:
    """Create a database key when none exists and no database depends on one."""
    if os.getenv(key_env):
        return

    runtime_env = _runtime_root() / RUNTIME_ENV_REL_PATH
    if config_db_path and Path(config_db_path).exists() and not runtime_env.exists():
        raise RuntimeError(
            "Runtime key file is missing while database file exists. "
            f"Restore key file or set {key_env}."
        )

    db_key = secrets.token_urlsafe(48)
    os.environ[key_env] = db_key
    runtime_env.parent.mkdir(parents=True, exist_ok=True)
    runtime_env.write_text(f"{key_env}='{db_key}'\n", encoding="utf-8")


def ensure_runtime_keys(config: AppConfig) -> None:
    """Ensure the database key is loaded or bootstrapped for the configured DB."""
    _ensure_runtime_env_loaded()
    _bootstrap_db_key(config.database.key_env, config.database.path)


def resolve_default_config_path() -> Path:
    """Resolve configuration path for source and packaged execution."""
    env_path = os.getenv("LEDGER_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    candidates = [
        Path.cwd() / DEFAULT_CONFIG_REL_PATH,
        _runtime_root() / DEFAULT_CONFIG_REL_PATH,
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the app configuration from YAML."""
    path = config_path or resolve_default_config_path()
    with path.open("r", encoding="utf-8") as file:
        raw = yaml.safe_load(file) or {}

    db = raw["db"]
    security = raw.get("security") or {}
    logging = raw.get("logging") or {}
    log_format = str(logging.get("format", "pretty"))
    if log_format not in {"pretty", "structured"}:
        raise RuntimeError(f"Unsupported logging format: {log_format}")

    return AppConfig(
        database=DatabaseConfig(
            path=str(db["path"]),
            key_env=str(db.get("key_env", DEFAULT_DB_KEY_ENV)),
            allow_sqlite_fallback=bool(db.get("allow_sqlite_fallback", False)),
            busy_timeout_ms=int(db.get("busy_timeout_ms", 5000)),
        ),
        security=SecurityConfig(
            hash_n=int(security.get("hash_n", 2**14)),
            hash_r=int(security.get("hash_r", 8)),
            hash_p=int(security.get("hash_p", 1)),
        ),
        logging=LoggingConfig(
            level=str(logging.get("level", "INFO")).upper(),
            format=log_format,
            retention_days=int(logging.get("retention_days", 1095)),
        ),
    )


def get_required_env(name: str) -> str:
    """Return a required environment variable or raise a clear error."""
    _ensure_runtime_env_loaded()
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Required environment variable is missing: {name}")
    return value
