# lam/device/provisioning.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from flask import Flask, jsonify, request
from werkzeug.serving import BaseWSGIServer, make_server

from lam.core.errors import ProvisioningError

from .credentials import CredentialStore
from .state import Credentials

CONFIGURE_PATH = "/configure"


@dataclass(frozen=True)
class ProvisioningResult:
    ok: bool
    error: Optional[str] = None
    status_code: int = 200

    def as_dict(self) -> dict:
        if self.ok:
            return {"status": "success"}
        return {"status": "error", "error": self.error}


def _validate(payload: Any) -> Credentials:
    if not isinstance(payload, dict):
        raise ProvisioningError("credentials payload must be a JSON object")

    ssid = payload.get("ssid")
    password = payload.get("password")
    if not isinstance(ssid, str) or not ssid.strip():
        raise ProvisioningError("missing or empty 'ssid'", hint='Send {"ssid": "...", "password": "..."}')
    if not isinstance(password, str):
        raise ProvisioningError("missing or invalid 'password'", hint="Use an empty string for open networks")
    return Credentials(ssid=ssid, password=password)


class ProvisioningHandler:
    """
    Accepts a credentials payload, persists it and signals the controller.

    Invalid payloads leave the store untouched.
    """

    def __init__(
        self,
        store: CredentialStore,
        on_saved: Optional[Callable[[Credentials], None]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.on_saved = on_saved
        self._log = logger or logging.getLogger(__name__)

    def submit(self, payload: Any) -> ProvisioningResult:
        try:
            creds = _validate(payload)
        except ProvisioningError as e:
            self._log.warning("PROVISION_REJECTED err=%s", e.message)
            return ProvisioningResult(ok=False, error=e.message, status_code=400)

        try:
            self.store.save(creds)
        except OSError as e:
            self._log.error("PROVISION_SAVE_FAILED err=%s", e)
            return ProvisioningResult(ok=False, error=f"could not persist credentials: {e}", status_code=500)

        self._log.info("PROVISION_OK ssid=%s", creds.ssid)
        if self.on_saved is not None:
            try:
                self.on_saved(creds)
            except Exception:
                self._log.exception("PROVISION_CALLBACK_ERROR")
        return ProvisioningResult(ok=True)


def create_app(handler: ProvisioningHandler) -> Flask:
    app = Flask(__name__)

    @app.route(CONFIGURE_PATH, methods=["POST"])
    def configure():
        result = handler.submit(request.get_json(silent=True))
        return jsonify(result.as_dict()), result.status_code

    return app


class ProvisioningServer:
    """Werkzeug server hosting the provisioning app on a background thread."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 80,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.host = host
        self._port = int(port)
        self._server: Optional[BaseWSGIServer] = None
        self._thread: Optional[threading.Thread] = None
        self._log = logger or logging.getLogger(__name__)

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        return self._server.server_port if self._server is not None else self._port

    def start(self, handler: ProvisioningHandler) -> None:
        if self._server is not None:
            return
        self._server = make_server(self.host, self._port, create_app(handler), threaded=True)
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="lam-provisioning", daemon=True
        )
        self._thread.start()
        self._log.info("PROVISION_SERVER_START addr=%s:%d path=%s", self.host, self.port, CONFIGURE_PATH)

    def stop(self) -> None:
        server, self._server = self._server, None
        thread, self._thread = self._thread, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if thread is not None:
            thread.join(timeout=2.0)
        self._log.info("PROVISION_SERVER_STOP")
