"""
Typed view of a decrypted Blockchain wallet document
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import MalformedDocument


@dataclass(frozen=True)
class KeyRecord:
    """
    One entry of the wallet's ``keys`` array

    Attributes:
        address: The P2PKH address (``addr``)
        private_field: Base58 private key, or its encrypted form when the
            wallet is double encrypted (``priv``); None for watch-only keys
        created_time: Creation time (``created_time``)
        label: User label (``label``)
    """
    address: str
    private_field: Optional[str] = field(default=None, repr=False)
    created_time: Optional[int] = None
    label: Optional[str] = None

    @property
    def is_watch_only(self) -> bool:
        return not self.private_field


@dataclass
class WalletDocument:
    """
    Decrypted wallet contents needed for key import

    Attributes:
        keys: Key records in file order
        double_encryption: Whether private fields carry a second encryption layer
        shared_key: Per-wallet salt for the second layer (``sharedKey``)
        second_password_hash: Hex SHA-256 hash of the second password (``dpasswordhash``)
        second_iterations: PBKDF2 iterations for the second layer (``options.pbkdf2_iterations``)
        guid: Wallet identifier, informational only
    """
    keys: List[KeyRecord]
    double_encryption: bool = False
    shared_key: Optional[str] = None
    second_password_hash: Optional[str] = field(default=None, repr=False)
    second_iterations: Optional[int] = None
    guid: Optional[str] = None

    @property
    def private_key_count(self) -> int:
        return sum(1 for record in self.keys if not record.is_watch_only)


def _optional(entry: Dict[str, Any], name: str, expected_type: type, where: str) -> Any:
    value = entry.get(name)
    if value is None:
        return None
    if not isinstance(value, expected_type) or isinstance(value, bool):
        raise MalformedDocument(
            f"Field '{name}' in {where} must be {expected_type.__name__}",
            "INVALID_FIELD_TYPE",
            {'field': name}
        )
    return value


def _parse_key_record(entry: Any, index: int) -> KeyRecord:
    where = f"keys[{index}]"
    if not isinstance(entry, dict):
        raise MalformedDocument(f"{where} is not an object", "INVALID_KEY_RECORD", {'index': index})

    address = entry.get('addr')
    if not isinstance(address, str) or not address:
        raise MalformedDocument(f"{where} is missing required field 'addr'", "MISSING_ADDRESS", {'index': index})

    return KeyRecord(
        address=address,
        private_field=_optional(entry, 'priv', str, where),
        created_time=_optional(entry, 'created_time', int, where),
        label=_optional(entry, 'label', str, where),
    )


def parse_wallet_document(data: Dict[str, Any]) -> WalletDocument:
    """
    Build a WalletDocument from decoded wallet JSON

    Raises:
        MalformedDocument: If ``keys`` or any ``addr`` is missing, or a field
            has the wrong type
    """
    if not isinstance(data, dict):
        raise MalformedDocument("Wallet document is not a JSON object", "INVALID_DOCUMENT")

    keys = data.get('keys')
    if not isinstance(keys, list):
        raise MalformedDocument("Wallet document is missing required field 'keys'", "MISSING_KEYS")

    options = data.get('options') or {}
    if not isinstance(options, dict):
        raise MalformedDocument("Field 'options' must be an object", "INVALID_FIELD_TYPE", {'field': 'options'})
    second_iterations = _optional(options, 'pbkdf2_iterations', int, 'options')
    if second_iterations is not None and second_iterations < 1:
        raise MalformedDocument(
            f"Invalid second password pbkdf2_iterations: {second_iterations}",
            "INVALID_ITERATIONS"
        )

    double_encryption = data.get('double_encryption')
    if double_encryption is None:
        double_encryption = False
    elif not isinstance(double_encryption, bool):
        raise MalformedDocument(
            "Field 'double_encryption' in wallet must be bool",
            "INVALID_FIELD_TYPE",
            {'field': 'double_encryption'}
        )

    return WalletDocument(
        keys=[_parse_key_record(entry, index) for index, entry in enumerate(keys)],
        double_encryption=double_encryption,
        shared_key=_optional(data, 'sharedKey', str, 'wallet'),
        second_password_hash=_optional(data, 'dpasswordhash', str, 'wallet'),
        second_iterations=second_iterations,
        guid=_optional(data, 'guid', str, 'wallet'),
    )


def load_wallet_document(plaintext: str) -> WalletDocument:
    """Parse decrypted wallet text into a WalletDocument"""
    try:
        data = json.loads(plaintext)
    except json.JSONDecodeError as e:
        raise MalformedDocument(f"Decrypted wallet is not valid JSON: {e}", "INVALID_WALLET_JSON") from e
    return parse_wallet_document(data)
