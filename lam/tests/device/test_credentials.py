from __future__ import annotations

from lam.device.credentials import CredentialStore
from lam.device.state import Credentials


def test_missing_file_is_no_credentials(tmp_path):
    store = CredentialStore(tmp_path / "none.yml")
    assert store.load() is None
    assert store.has_credentials() is False


def test_save_then_load_survives_new_instance(tmp_path):
    path = tmp_path / "nvs" / "creds.yml"
    CredentialStore(path).save(Credentials("Home", "secret123"))

    again = CredentialStore(path)
    assert again.load() == Credentials("Home", "secret123")
    assert not path.with_suffix(".yml.tmp").exists()


def test_clear_wipes_everything(tmp_path):
    store = CredentialStore(tmp_path / "creds.yml")
    store.save(Credentials("Home", "pw"))
    store.clear()
    store.clear()
    assert store.load() is None
    assert not store.path.exists()


def test_invalid_contents_are_ignored(tmp_path, caplog):
    path = tmp_path / "creds.yml"
    store = CredentialStore(path)

    path.write_text("- just\n- a list\n", encoding="utf-8")
    assert store.load() is None

    path.write_text("ssid: ''\npassword: x\n", encoding="utf-8")
    assert store.load() is None

    path.write_text("ssid: [unclosed\n", encoding="utf-8")
    assert store.load() is None
    assert "CREDENTIALS_" in caplog.text


def test_repr_hides_password():
    assert "secret" not in repr(Credentials("Home", "secret123"))
