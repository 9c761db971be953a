"""
Key stores that receive recovered wallet keys

The importer only needs :class:`KeyStore.add_key`. Two implementations are
provided: an in-memory store, and :class:`SecureKeyStorage` which keeps keys
in the OS keychain with an encrypted file fallback.
"""

import os
import json
import logging
import platform
import secrets
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

# Keyring import for OS keychain
try:
    import keyring
    from keyring.errors import KeyringError, KeyringLocked
    from keyring.backends import fail
    KEYRING_AVAILABLE = True
except ImportError:
    KEYRING_AVAILABLE = False
    keyring = None
    fail = None
    KeyringError = Exception
    KeyringLocked = Exception

from ..exceptions import BcWalletSDKError, StorageError
from .keys import MAINNET, NetworkParameters, RecoveredKey, parse_wif

logger = logging.getLogger(__name__)

# Constants
STORAGE_SERVICE_NAME = "Blockchain Wallet Import"
DEFAULT_STORAGE_DIR = "bcwallet"
ENCRYPTED_FILE_EXTENSION = ".key"
KEY_FILE_PERMISSIONS = 0o600  # Owner read/write only
SALT_LENGTH = 32
SCRYPT_N = 32768  # CPU cost factor
SCRYPT_R = 8      # Memory cost factor
SCRYPT_P = 1      # Parallelization factor


def keyring_backend_usable() -> bool:
    """Whether an OS keyring backend other than keyring's fail backend is active"""
    if not KEYRING_AVAILABLE:
        return False
    try:
        backend = keyring.get_keyring()
    except KeyringError:
        return False
    return not isinstance(backend, fail.Keyring)


class KeyStore(ABC):
    """Receiver of recovered keys; takes ownership of each key it accepts"""

    @abstractmethod
    def add_key(self, key: RecoveredKey, network: NetworkParameters = MAINNET) -> None:
        ...


class InMemoryKeyStore(KeyStore):
    """
    Keeps recovered keys in insertion order, keyed by address

    A second key for the same address replaces the first.
    """

    def __init__(self):
        self._keys: Dict[str, RecoveredKey] = {}
        self.network: Optional[NetworkParameters] = None

    def add_key(self, key: RecoveredKey, network: NetworkParameters = MAINNET) -> None:
        if self.network is not None and self.network != network:
            raise StorageError(
                f"Store holds {self.network.name} keys, cannot add a {network.name} key",
                "NETWORK_MISMATCH"
            )
        self.network = network
        if key.address in self._keys:
            logger.debug(f"Replacing stored key for {key.address}")
        self._keys[key.address] = key

    def get_key(self, address: str) -> Optional[RecoveredKey]:
        return self._keys.get(address)

    @property
    def keys(self) -> List[RecoveredKey]:
        return list(self._keys.values())

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, address: object) -> bool:
        return address in self._keys


@dataclass
class StorageMetadata:
    """
    Metadata for stored keys

    Attributes:
        address: Address the key belongs to
        storage_type: Type of storage used ('keyring' or 'file')
        created_at: Timestamp when key was stored
        network: Network name the key was stored for
    """
    address: str
    storage_type: str
    created_at: str
    network: str


class SecureKeyStorage(KeyStore):
    """
    Secure key storage with OS keychain and encrypted file fallback

    Keys are serialized as WIF plus the wallet's label and creation time.
    """

    def __init__(self, storage_dir: Optional[str] = None, use_keyring: bool = True,
                 passphrase: Optional[str] = None):
        """
        Initialize secure key storage

        Args:
            storage_dir: Directory for encrypted file storage (optional)
            use_keyring: Whether to use OS keyring when available
            passphrase: Passphrase for file storage, used by :meth:`add_key`
        """
        self.use_keyring = use_keyring and KEYRING_AVAILABLE
        self.storage_dir = Path(storage_dir) if storage_dir else self._get_default_storage_dir()
        self._passphrase = passphrase
        self._ensure_storage_dir()

    def _get_default_storage_dir(self) -> Path:
        """Get default storage directory based on platform"""
        home = Path.home()

        if platform.system() == "Windows":
            appdata = os.getenv("APPDATA", str(home))
            return Path(appdata) / DEFAULT_STORAGE_DIR
        elif platform.system() == "Darwin":
            return home / "Library" / "Application Support" / DEFAULT_STORAGE_DIR
        else:
            return home / f".{DEFAULT_STORAGE_DIR}"

    def _ensure_storage_dir(self) -> None:
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            if platform.system() != "Windows":
                os.chmod(self.storage_dir, 0o700)
        except OSError as e:
            raise StorageError(
                f"Failed to create storage directory: {e}",
                "STORAGE_DIR_CREATION_FAILED"
            ) from e

    def _get_key_identifier(self, address: str) -> str:
        return f"{STORAGE_SERVICE_NAME}:{address}"

    def _get_file_path(self, address: str) -> Path:
        safe_address = "".join(c for c in address if c.isalnum())
        return self.storage_dir / f"{safe_address}{ENCRYPTED_FILE_EXTENSION}"

    def _get_timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _derive_key_from_passphrase(self, passphrase: str, salt: bytes) -> bytes:
        """Derive file encryption key from passphrase using Scrypt KDF"""
        kdf = Scrypt(
            length=32,  # 256-bit key
            salt=salt,
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
        )
        return kdf.derive(passphrase.encode('utf-8'))

    def _encrypt_key_data(self, key_data: bytes, passphrase: str) -> Dict[str, str]:
        salt = secrets.token_bytes(SALT_LENGTH)
        encryption_key = self._derive_key_from_passphrase(passphrase, salt)

        fernet = Fernet(base64.urlsafe_b64encode(encryption_key))
        encrypted_data = fernet.encrypt(key_data)

        return {
            'encrypted_data': base64.b64encode(encrypted_data).decode('ascii'),
            'salt': base64.b64encode(salt).decode('ascii'),
            'algorithm': 'Scrypt-Fernet',
            'version': '1.0'
        }

    def _decrypt_key_data(self, encrypted_payload: Dict[str, str], passphrase: str) -> bytes:
        try:
            encrypted_data = base64.b64decode(encrypted_payload['encrypted_data'])
            salt = base64.b64decode(encrypted_payload['salt'])
            decryption_key = self._derive_key_from_passphrase(passphrase, salt)
            return Fernet(base64.urlsafe_b64encode(decryption_key)).decrypt(encrypted_data)
        except InvalidToken as e:
            raise StorageError("Key decryption failed - wrong passphrase?", "KEY_DECRYPTION_FAILED") from e
        except (KeyError, ValueError) as e:
            raise StorageError(f"Key decryption failed: {e}", "KEY_DECRYPTION_FAILED") from e

    @staticmethod
    def _serialize_key(key: RecoveredKey, network: NetworkParameters) -> bytes:
        return json.dumps({
            'wif': key.to_wif(network),
            'address': key.address,
            'created_time': key.created_time,
            'label': key.label,
        }).encode('utf-8')

    @staticmethod
    def _deserialize_key(key_data: bytes) -> Tuple[RecoveredKey, NetworkParameters]:
        try:
            record = json.loads(key_data.decode('utf-8'))
            scalar, compressed, network = parse_wif(record['wif'])
            key = RecoveredKey(
                private_scalar=scalar,
                compressed=compressed,
                address=record['address'],
                created_time=record.get('created_time'),
                label=record.get('label'),
            )
            return key, network
        except (ValueError, KeyError, BcWalletSDKError) as e:
            raise StorageError(f"Stored key data is invalid: {e}", "INVALID_STORED_KEY") from e

    def _store_to_keyring(self, address: str, key_data: bytes) -> None:
        try:
            encoded_data = base64.b64encode(key_data).decode('ascii')
            keyring.set_password(STORAGE_SERVICE_NAME, self._get_key_identifier(address), encoded_data)
        except (KeyringError, KeyringLocked) as e:
            raise StorageError(f"Keyring storage failed: {e}", "KEYRING_STORAGE_FAILED") from e

    def _retrieve_from_keyring(self, address: str) -> Optional[bytes]:
        try:
            encoded_data = keyring.get_password(STORAGE_SERVICE_NAME, self._get_key_identifier(address))
        except (KeyringError, KeyringLocked) as e:
            raise StorageError(f"Keyring retrieval failed: {e}", "KEYRING_RETRIEVAL_FAILED") from e
        if encoded_data is None:
            return None
        return base64.b64decode(encoded_data)

    def _delete_from_keyring(self, address: str) -> bool:
        try:
            keyring.delete_password(STORAGE_SERVICE_NAME, self._get_key_identifier(address))
            return True
        except KeyringError:
            return False

    def _store_to_file(self, address: str, key_data: bytes, passphrase: str, network: NetworkParameters) -> None:
        file_path = self._get_file_path(address)
        file_data = {
            'address': address,
            'storage_type': 'file',
            'network': network.name,
            'created_at': self._get_timestamp(),
            'encrypted_key': self._encrypt_key_data(key_data, passphrase)
        }

        try:
            with open(file_path, 'w') as f:
                json.dump(file_data, f, indent=2)
            if platform.system() != "Windows":
                os.chmod(file_path, KEY_FILE_PERMISSIONS)
        except OSError as e:
            if file_path.exists():
                file_path.unlink()
            raise StorageError(f"File storage failed: {e}", "FILE_STORAGE_FAILED") from e

    def _retrieve_from_file(self, address: str, passphrase: str) -> Optional[bytes]:
        file_path = self._get_file_path(address)
        if not file_path.exists():
            return None

        try:
            with open(file_path, 'r') as f:
                file_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"File retrieval failed: {e}", "FILE_RETRIEVAL_FAILED") from e

        return self._decrypt_key_data(file_data.get('encrypted_key', {}), passphrase)

    def add_key(self, key: RecoveredKey, network: NetworkParameters = MAINNET) -> None:
        self.store_key(key, network, self._passphrase)

    def store_key(self, key: RecoveredKey, network: NetworkParameters = MAINNET,
                  passphrase: Optional[str] = None) -> StorageMetadata:
        """
        Store a recovered key securely

        Args:
            key: Key to store, identified by its address
            network: Network used for the WIF serialization
            passphrase: Passphrase for file encryption (required if keyring unavailable)

        Returns:
            StorageMetadata: Metadata about the stored key

        Raises:
            StorageError: If storage fails
        """
        key_data = self._serialize_key(key, network)
        storage_type = None

        if self.use_keyring:
            try:
                self._store_to_keyring(key.address, key_data)
                storage_type = 'keyring'
            except StorageError as e:
                logger.warning(f"Keyring unavailable, falling back to file storage: {e}")

        if storage_type is None:
            if passphrase is None:
                raise StorageError(
                    "Passphrase required for encrypted file storage",
                    "PASSPHRASE_REQUIRED"
                )
            self._store_to_file(key.address, key_data, passphrase, network)
            storage_type = 'file'

        logger.debug(f"Stored key for {key.address} in {storage_type} storage")
        return StorageMetadata(
            address=key.address,
            storage_type=storage_type,
            created_at=self._get_timestamp(),
            network=network.name
        )

    def retrieve_key(self, address: str, passphrase: Optional[str] = None) -> Optional[RecoveredKey]:
        """
        Retrieve a stored key

        Returns:
            RecoveredKey or None if no key is stored for the address

        Raises:
            StorageError: If retrieval fails
        """
        stored = self.retrieve_key_and_network(address, passphrase)
        return stored[0] if stored else None

    def retrieve_key_and_network(self, address: str, passphrase: Optional[str] = None
                                 ) -> Optional[Tuple[RecoveredKey, NetworkParameters]]:
        """Retrieve a stored key along with the network it was stored for"""
        key_data = None

        if self.use_keyring:
            try:
                key_data = self._retrieve_from_keyring(address)
            except StorageError as e:
                logger.warning(f"Keyring retrieval failed, trying file storage: {e}")

        if key_data is None:
            passphrase = passphrase if passphrase is not None else self._passphrase
            if passphrase is None:
                if self._get_file_path(address).exists():
                    raise StorageError(
                        "Passphrase required for encrypted file storage",
                        "PASSPHRASE_REQUIRED"
                    )
                return None
            key_data = self._retrieve_from_file(address, passphrase)

        if key_data is None:
            return None
        return self._deserialize_key(key_data)

    def delete_key(self, address: str) -> bool:
        """Delete a key from keyring and file storage; True if anything was removed"""
        deleted_from_keyring = False
        if self.use_keyring:
            deleted_from_keyring = self._delete_from_keyring(address)

        file_path = self._get_file_path(address)
        deleted_from_file = False
        if file_path.exists():
            file_path.unlink()
            deleted_from_file = True

        return deleted_from_keyring or deleted_from_file

    def list_keys(self) -> List[str]:
        """
        List addresses with file-stored keys

        Keyring doesn't provide a reliable way to enumerate entries, so only
        file storage is listed.
        """
        return sorted(path.stem for path in self.storage_dir.glob(f"*{ENCRYPTED_FILE_EXTENSION}"))

    def check_storage_availability(self) -> Dict[str, Any]:
        return {
            'keyring_available': self.use_keyring and keyring_backend_usable(),
            'file_storage_available': True,
            'storage_dir': str(self.storage_dir),
            'storage_dir_exists': self.storage_dir.exists(),
            'platform': platform.system()
        }


def get_default_storage(passphrase: Optional[str] = None) -> SecureKeyStorage:
    """Get default secure key storage instance"""
    return SecureKeyStorage(passphrase=passphrase)
