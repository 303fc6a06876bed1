from __future__ import annotations

import pytest

from lam.device.provisioning import CONFIGURE_PATH, ProvisioningHandler, create_app
from lam.device.state import Credentials


@pytest.fixture
def saved():
    return []


@pytest.fixture
def handler(store, saved):
    return ProvisioningHandler(store, on_saved=saved.append)


@pytest.fixture
def client(handler):
    app = create_app(handler)
    app.config["TESTING"] = True
    return app.test_client()


def test_valid_payload_persists_and_signals(client, store, saved):
    resp = client.post(CONFIGURE_PATH, json={"ssid": "Home", "password": "secret123"})

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "success"}
    assert store.load() == Credentials("Home", "secret123")
    assert saved == [Credentials("Home", "secret123")]


@pytest.mark.parametrize(
    "payload",
    [
        {"password": "x"},
        {"ssid": "", "password": "x"},
        {"ssid": "Home"},
        {"ssid": "Home", "password": 123},
        ["Home", "x"],
    ],
)
def test_invalid_payload_is_rejected_without_side_effects(client, store, saved, payload):
    resp = client.post(CONFIGURE_PATH, json=payload)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["status"] == "error"
    assert body["error"]
    assert store.load() is None
    assert saved == []


def test_non_json_body_is_rejected(client, store):
    resp = client.post(CONFIGURE_PATH, data="ssid=Home", content_type="application/x-www-form-urlencoded")
    assert resp.status_code == 400
    assert store.load() is None


def test_only_post_is_allowed(client):
    assert client.get(CONFIGURE_PATH).status_code == 405


def test_open_network_with_empty_password(handler, store):
    result = handler.submit({"ssid": "Cafe", "password": ""})
    assert result.ok
    assert store.load() == Credentials("Cafe", "")


def test_callback_error_does_not_fail_request(store):
    def boom(_):
        raise RuntimeError("boom")

    result = ProvisioningHandler(store, on_saved=boom).submit({"ssid": "Home", "password": "x"})
    assert result.ok
