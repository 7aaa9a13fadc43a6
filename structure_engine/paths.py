from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "STRUCTURE_ENGINE_HOME"
APP_ENV_DB = "STRUCTURE_ENGINE_DB"
APP_ENV_CONFIG = "STRUCTURE_ENGINE_CONFIG"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains structure_engine/, api/, cli/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for the structure engine.
    Override with STRUCTURE_ENGINE_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".structure_engine").resolve()


def config_dir() -> Path:
    d = app_home() / "config"
    d.mkdir(parents=True, exist_ok=True)
    return d


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path.

    Resolution order:
    1. STRUCTURE_ENGINE_DB env var (explicit override)
    2. ~/.structure_engine/data/structure.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "structure.db"


def config_path() -> Path:
    """
    Structure config file.

    Resolution order:
    1. STRUCTURE_ENGINE_CONFIG env var
    2. <app_home>/config/structure.yaml
    """
    if os.environ.get(APP_ENV_CONFIG):
        return Path(os.environ[APP_ENV_CONFIG]).expanduser().resolve()
    return config_dir() / "structure.yaml"
