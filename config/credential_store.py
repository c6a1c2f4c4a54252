#!/usr/bin/env python3

"""
Saved-login store.

Remembers identity/secret pairs so a later run can log in without prompting.
The pairs are kept as one Fernet-encrypted JSON document; the Fernet key
lives in the system keyring under the configured service name.

Troubleshooting:
- "Could not retrieve master key from keyring" is expected on first use and
  on systems without a keyring backend. A temporary key is used for the rest
  of the process, so saved logins will not survive a restart.
- "Saved logins could not be decrypted" means the key in the keyring does not
  match the file (for example after the keyring was reset). Delete the file
  with SaveStateStore.delete() and log in again.
"""

# === CORE INFRASTRUCTURE ===
import logging

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
import json
import threading
from pathlib import Path
from typing import Optional

# === THIRD-PARTY IMPORTS ===
import keyring
from cryptography.fernet import Fernet, InvalidToken
from keyring.errors import KeyringError, PasswordDeleteError

# === LOCAL IMPORTS ===
from core.exceptions import CredentialStoreError

MASTER_KEY_NAME = "master_key"


class SaveStateStore:
    """
    Encrypted identity -> secret store backed by a file and the system keyring.

    Usage:
        store = SaveStateStore(Path("Data/saved_logins.enc"), service_name="game-session")
        store.add_save_state("wizard", "hunter2")
        secret = store.get_secret("wizard")
    """

    def __init__(self, path: Path, service_name: str = "game-session") -> None:
        self.path = Path(path)
        self.service_name = service_name
        self._fernet: Optional[Fernet] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Key management
    # ------------------------------------------------------------------

    def _get_master_key(self) -> bytes:
        """Get or create the Fernet key kept in the system keyring."""
        try:
            stored = keyring.get_password(self.service_name, MASTER_KEY_NAME)
            if stored:
                return stored.encode()
        except KeyringError as e:
            logger.warning(f"Could not retrieve master key from keyring: {e}")

        return self._generate_new_master_key()

    def _generate_new_master_key(self) -> bytes:
        key = Fernet.generate_key()
        try:
            keyring.set_password(self.service_name, MASTER_KEY_NAME, key.decode())
            logger.info("Generated and stored new master encryption key")
        except KeyringError as e:
            logger.error(f"Failed to store master key in keyring: {e}")
            logger.warning("Using temporary key - saved logins won't persist between sessions")
        return key

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._get_master_key())
        return self._fernet

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            decrypted = self._get_fernet().decrypt(self.path.read_bytes())
        except InvalidToken as e:
            raise CredentialStoreError(
                "Saved logins could not be decrypted",
                context={"path": str(self.path)},
                recovery_hint="Delete the saved-login file and log in again",
            ) from e
        except OSError as e:
            raise CredentialStoreError(f"Saved logins could not be read: {e}", context={"path": str(self.path)}) from e
        return json.loads(decrypted.decode())

    def _write_all(self, entries: dict[str, str]) -> None:
        encrypted = self._get_fernet().encrypt(json.dumps(entries).encode())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(encrypted)
            self.path.chmod(0o600)
        except OSError as e:
            raise CredentialStoreError(f"Saved logins could not be written: {e}", context={"path": str(self.path)}) from e

    def add_save_state(self, identity: str, secret: str) -> bool:
        """
        Remember a login.

        Returns:
            bool: True when stored, False when it could not be persisted
        """
        with self._lock:
            try:
                entries = self._read_all()
                entries[identity.lower()] = secret
                self._write_all(entries)
            except CredentialStoreError as e:
                logger.error(f"Failed to save login for {identity}: {e.message}")
                return False
        logger.debug(f"Saved login for {identity}")
        return True

    def get_secret(self, identity: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(identity.lower())

    def identities(self) -> list[str]:
        with self._lock:
            return sorted(self._read_all())

    def remove(self, identity: str) -> bool:
        with self._lock:
            entries = self._read_all()
            if entries.pop(identity.lower(), None) is None:
                return False
            self._write_all(entries)
            return True

    def delete(self) -> bool:
        """Delete the saved-login file and the master key."""
        with self._lock:
            try:
                if self.path.exists():
                    self.path.unlink()
                    logger.info("Deleted saved-login file")
            except OSError as e:
                logger.error(f"Failed to delete saved logins: {e}")
                return False

            try:
                keyring.delete_password(self.service_name, MASTER_KEY_NAME)
                logger.info("Removed master key from system keyring")
            except PasswordDeleteError:
                logger.debug("No master key in keyring to remove")
            except KeyringError as e:
                logger.warning(f"Could not remove master key from keyring: {e}")

            self._fernet = None
            return True


__all__ = ["SaveStateStore"]
