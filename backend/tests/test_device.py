"""Tests for device identity — generation, persistence, repair."""

import json
import uuid

import pytest

from lumen.services.device import (
    PAIRING_ALPHABET,
    DeviceIdentityStore,
    generate_pairing_code,
    is_valid_pairing_code,
)


@pytest.fixture
def device_file(tmp_path):
    return tmp_path / "state" / "device.json"


class TestPairingCode:
    def test_shape(self):
        for _ in range(50):
            code = generate_pairing_code()
            assert len(code) == 6
            assert all(c in PAIRING_ALPHABET for c in code)

    @pytest.mark.parametrize("code", ["ABC12", "ABC-123", "ABCDE0", "abcdef", None, 123456])
    def test_invalid(self, code):
        assert is_valid_pairing_code(code) is False

    def test_ambiguous_characters_excluded(self):
        for c in "IO01":
            assert c not in PAIRING_ALPHABET


class TestIdentityStore:
    def test_creates_and_persists(self, device_file):
        device = DeviceIdentityStore(device_file).load()
        assert uuid.UUID(device.device_id)
        assert is_valid_pairing_code(device.pairing_code)

        data = json.loads(device_file.read_text())
        assert data == {"device_id": device.device_id, "pairing_code": device.pairing_code}

    def test_stable_across_restarts(self, device_file):
        first = DeviceIdentityStore(device_file).load()
        second = DeviceIdentityStore(device_file).load()
        assert first == second

    def test_missing_code_regenerated_id_kept(self, device_file):
        device_id = str(uuid.uuid4())
        device_file.parent.mkdir(parents=True)
        device_file.write_text(json.dumps({"device_id": device_id}))

        device = DeviceIdentityStore(device_file).load()

        assert device.device_id == device_id
        assert is_valid_pairing_code(device.pairing_code)
        assert json.loads(device_file.read_text())["pairing_code"] == device.pairing_code

    def test_corrupt_file_regenerated(self, device_file):
        device_file.parent.mkdir(parents=True)
        device_file.write_text("{not json")
        device = DeviceIdentityStore(device_file).load()
        assert is_valid_pairing_code(device.pairing_code)
        assert json.loads(device_file.read_text())["device_id"] == device.device_id

    def test_valid_file_not_rewritten(self, device_file):
        device_file.parent.mkdir(parents=True)
        original = json.dumps({"device_id": str(uuid.uuid4()), "pairing_code": "ABC234"})
        device_file.write_text(original)
        DeviceIdentityStore(device_file).load()
        assert device_file.read_text() == original
