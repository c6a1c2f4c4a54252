#!/usr/bin/env python3
"""
Tests for persistent user state: preference flags and the encrypted
saved-login store. The system keyring is replaced with an in-memory fake.
"""

from __future__ import annotations

import json
import sys
from unittest.mock import patch

from keyring.errors import KeyringError, PasswordDeleteError

from config.credential_store import MASTER_KEY_NAME, SaveStateStore
from config.preferences import Preferences
from core.exceptions import CredentialStoreError
from testing.test_framework import TestSuite
from testing.test_utilities import create_standard_test_runner, temp_directory


class _MemoryKeyring:
    """Dictionary-backed stand-in for the keyring module functions."""

    def __init__(self, broken: bool = False) -> None:
        self.passwords: dict[tuple[str, str], str] = {}
        self.broken = broken

    def get_password(self, service: str, name: str):
        if self.broken:
            raise KeyringError("no backend")
        return self.passwords.get((service, name))

    def set_password(self, service: str, name: str, value: str) -> None:
        if self.broken:
            raise KeyringError("no backend")
        self.passwords[(service, name)] = value

    def delete_password(self, service: str, name: str) -> None:
        if (service, name) not in self.passwords:
            raise PasswordDeleteError("not found")
        del self.passwords[(service, name)]

    def patched(self):
        return patch.multiple(
            "keyring",
            get_password=self.get_password,
            set_password=self.set_password,
            delete_password=self.delete_password,
        )


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


def _test_flag_defaults() -> None:
    prefs = Preferences(defaults={"stealth_login": True})
    assert prefs.get_boolean("stealth_login") is True
    assert prefs.get_boolean("use_alternate_server") is False
    assert prefs.get_boolean("not_a_flag") is False

    prefs.set_boolean("stealth_login", False)
    assert prefs.get_boolean("stealth_login") is False
    assert prefs.get_all_flags()["stealth_login"] is False


def _test_identity_strings() -> None:
    prefs = Preferences()
    assert prefs.get_string("Wizard", "display_name") == ""
    prefs.set_string("Wizard", "display_name", "Wizard")
    assert prefs.get_string("wizard", "display_name") == "Wizard", "Identities are case-insensitive"
    assert prefs.identities() == ["wizard"]


def _test_preferences_persist() -> None:
    with temp_directory() as tmp:
        path = tmp / "prefs" / "preferences.json"
        prefs = Preferences(path)
        prefs.set_boolean("use_alternate_server", True)
        prefs.set_string("wizard", "display_name", "The Wizard")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["flags"] == {"use_alternate_server": True}
        assert "updated_at" in data

        reloaded = Preferences(path)
        assert reloaded.get_boolean("use_alternate_server") is True
        assert reloaded.get_string("WIZARD", "display_name") == "The Wizard"


def _test_no_autosave() -> None:
    with temp_directory() as tmp:
        path = tmp / "preferences.json"
        prefs = Preferences(path, autosave=False)
        prefs.set_boolean("stealth_login", True)
        assert not path.exists()
        assert prefs.save() is True
        assert path.exists()


def _test_corrupt_preferences() -> None:
    with temp_directory() as tmp:
        path = tmp / "preferences.json"
        path.write_text("[not json", encoding="utf-8")
        prefs = Preferences(path)
        assert prefs.get_boolean("stealth_login") is False
        assert prefs.load() == 0
    assert Preferences().save() is False, "No path configured"


def _test_reset_preferences() -> None:
    prefs = Preferences(defaults={"save_state_active": True})
    prefs.set_boolean("save_state_active", False)
    prefs.set_string("wizard", "display_name", "x")
    prefs.reset()
    assert prefs.get_boolean("save_state_active") is True
    assert prefs.identities() == []


# ---------------------------------------------------------------------------
# Saved logins
# ---------------------------------------------------------------------------


def _test_save_and_read_back() -> None:
    fake = _MemoryKeyring()
    with temp_directory() as tmp, fake.patched():
        path = tmp / "saved_logins.enc"
        store = SaveStateStore(path, service_name="test-service")
        assert store.add_save_state("Wizard", "hunter2")
        assert store.add_save_state("sorceress", "swordfish")

        assert b"hunter2" not in path.read_bytes(), "Secrets are encrypted at rest"
        assert ("test-service", MASTER_KEY_NAME) in fake.passwords

        fresh = SaveStateStore(path, service_name="test-service")
        assert fresh.get_secret("WIZARD") == "hunter2"
        assert fresh.identities() == ["sorceress", "wizard"]
        assert fresh.get_secret("nobody") is None


def _test_remove_and_delete() -> None:
    fake = _MemoryKeyring()
    with temp_directory() as tmp, fake.patched():
        path = tmp / "saved_logins.enc"
        store = SaveStateStore(path, service_name="test-service")
        store.add_save_state("wizard", "hunter2")

        assert store.remove("wizard") is True
        assert store.remove("wizard") is False
        assert store.identities() == []

        assert store.delete() is True
        assert not path.exists()
        assert fake.passwords == {}
        assert store.delete() is True, "Deleting twice is harmless"


def _test_wrong_key() -> None:
    fake = _MemoryKeyring()
    with temp_directory() as tmp, fake.patched():
        path = tmp / "saved_logins.enc"
        SaveStateStore(path, service_name="test-service").add_save_state("wizard", "hunter2")
        fake.passwords.clear()

        store = SaveStateStore(path, service_name="test-service")
        try:
            store.get_secret("wizard")
            raise AssertionError("Expected CredentialStoreError")
        except CredentialStoreError as e:
            assert e.recovery_hint
        assert store.add_save_state("wizard", "new") is False


def _test_keyring_unavailable() -> None:
    fake = _MemoryKeyring(broken=True)
    with temp_directory() as tmp, fake.patched():
        store = SaveStateStore(tmp / "saved_logins.enc")
        assert store.add_save_state("wizard", "hunter2")
        assert store.get_secret("wizard") == "hunter2", "Temporary key works for the process lifetime"


def user_state_module_tests() -> bool:
    suite = TestSuite("Preferences & Saved Logins", "config/preferences.py, config/credential_store.py")
    suite.start_suite()

    suite.run_test(
        test_name="Flag defaults",
        test_func=_test_flag_defaults,
        test_summary="Unset flags fall back to configured defaults",
        functions_tested="Preferences.get_boolean, set_boolean",
        expected_outcome="Defaults until written, written values afterwards",
    )
    suite.run_test(
        test_name="Identity strings",
        test_func=_test_identity_strings,
        test_summary="Per-identity values are keyed case-insensitively",
        functions_tested="Preferences.get_string, set_string",
        expected_outcome="Lookup by any case finds the value",
    )
    suite.run_test(
        test_name="Persistence",
        test_func=_test_preferences_persist,
        test_summary="Changes are written to JSON and read back",
        functions_tested="Preferences.save, Preferences.load",
        expected_outcome="Reloaded store has the same values",
    )
    suite.run_test(
        test_name="No autosave",
        test_func=_test_no_autosave,
        test_summary="autosave=False defers writing until save()",
        expected_outcome="File appears only after save()",
    )
    suite.run_test(
        test_name="Corrupt file",
        test_func=_test_corrupt_preferences,
        test_summary="An unreadable preferences file is logged and ignored",
        expected_outcome="Defaults in effect",
    )
    suite.run_test(
        test_name="Reset",
        test_func=_test_reset_preferences,
        test_summary="reset() drops stored values but keeps defaults",
        expected_outcome="Default flag value, no identities",
    )
    suite.run_test(
        test_name="Saved logins",
        test_func=_test_save_and_read_back,
        test_summary="Logins are encrypted on disk and readable by a new store",
        functions_tested="SaveStateStore.add_save_state, get_secret, identities",
        expected_outcome="Secret read back, never stored in plain text",
    )
    suite.run_test(
        test_name="Remove and delete",
        test_func=_test_remove_and_delete,
        test_summary="Logins can be forgotten one by one or all at once",
        functions_tested="SaveStateStore.remove, SaveStateStore.delete",
        expected_outcome="File and master key removed",
    )
    suite.run_test(
        test_name="Wrong key",
        test_func=_test_wrong_key,
        test_summary="A file encrypted with another key raises a store error",
        expected_outcome="CredentialStoreError on read, False on save",
    )
    suite.run_test(
        test_name="No keyring backend",
        test_func=_test_keyring_unavailable,
        test_summary="Without a keyring a temporary key is used",
        expected_outcome="Save and read succeed within the process",
    )

    return suite.finish_suite()


run_comprehensive_tests = create_standard_test_runner(user_state_module_tests)


def test_user_state_suite() -> None:
    assert run_comprehensive_tests()


if __name__ == "__main__":
    success = run_comprehensive_tests()
    sys.exit(0 if success else 1)
