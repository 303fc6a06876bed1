# lam/device/credentials.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from .state import Credentials


class CredentialStore:
    """
    Persistent key-value store for network credentials (one YAML file).

    Survives process restarts the way NVS/preferences survive a reboot.
    clear() removes the file, wiping every key.
    """

    def __init__(self, path: str | Path, *, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self._log = logger or logging.getLogger(__name__)

    def load(self) -> Optional[Credentials]:
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self._log.warning("CREDENTIALS_UNREADABLE path=%s err=%s", self.path, e)
            return None

        if not isinstance(data, dict):
            self._log.warning("CREDENTIALS_INVALID path=%s", self.path)
            return None

        ssid = data.get("ssid")
        password = data.get("password", "")
        if not isinstance(ssid, str) or not ssid or not isinstance(password, str):
            self._log.warning("CREDENTIALS_INVALID path=%s", self.path)
            return None
        return Credentials(ssid=ssid, password=password)

    def save(self, credentials: Credentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                {"ssid": credentials.ssid, "password": credentials.password},
                f,
                sort_keys=False,
            )
        os.replace(tmp, self.path)
        self._log.info("CREDENTIALS_SAVED ssid=%s", credentials.ssid)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        self._log.info("CREDENTIALS_CLEARED")

    def has_credentials(self) -> bool:
        return self.load() is not None
