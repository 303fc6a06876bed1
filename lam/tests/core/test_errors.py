from __future__ import annotations

import pytest

from lam.core import errors
from lam.core.errors import ConfigError, LamError


def test_error_codes_are_stable_and_unique():
    codes = {cls.__name__: cls.code for cls in LamError.__subclasses__()}
    assert codes == {
        "ConfigError": "config_error",
        "DeviceConnectError": "device_connect_error",
        "ProtocolCommunicationError": "protocol_communication_error",
        "ProvisioningError": "provisioning_error",
    }


def test_lost_device_is_an_event_not_an_error():
    assert not hasattr(errors, "DeviceDisconnectedError")


def test_error_carries_hint_and_details():
    with pytest.raises(LamError) as ei:
        raise ConfigError("bad", hint="fix it", details={"key": "x"})
    assert str(ei.value) == "bad"
    assert ei.value.hint == "fix it"
    assert ei.value.details == {"key": "x"}
    assert ei.value.code == "config_error"
