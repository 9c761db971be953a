"""
Cryptographic operations for the Blockchain wallet import SDK
"""

from .cipher import (
    CipherContext,
    build_cipher_context,
    derive_and_decrypt,
    password_to_pkcs5_bytes,
    remove_iso10126_padding,
)

from .keys import (
    NetworkParameters,
    RecoveredKey,
    MAINNET,
    TESTNET,
    get_network,
    decode_private_key,
    public_key_to_address,
    scalar_to_address,
    parse_wif,
)

from .backup import (
    BackupGeneration,
    BackupPayload,
    detect_payload,
    extract_payload,
    read_backup_file,
)

from .double_encryption import (
    SecondPasswordUnwrapper,
    second_password_hash,
)

from .storage import (
    KeyStore,
    InMemoryKeyStore,
    SecureKeyStorage,
    StorageMetadata,
    get_default_storage,
    keyring_backend_usable,
)

__all__ = [
    # Password cipher
    'CipherContext',
    'build_cipher_context',
    'derive_and_decrypt',
    'password_to_pkcs5_bytes',
    'remove_iso10126_padding',

    # Key records
    'NetworkParameters',
    'RecoveredKey',
    'MAINNET',
    'TESTNET',
    'get_network',
    'decode_private_key',
    'public_key_to_address',
    'scalar_to_address',
    'parse_wif',

    # Backup payloads
    'BackupGeneration',
    'BackupPayload',
    'detect_payload',
    'extract_payload',
    'read_backup_file',

    # Double encryption
    'SecondPasswordUnwrapper',
    'second_password_hash',

    # Key storage
    'KeyStore',
    'InMemoryKeyStore',
    'SecureKeyStorage',
    'StorageMetadata',
    'get_default_storage',
    'keyring_backend_usable',
]
