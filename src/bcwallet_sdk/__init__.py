"""
Blockchain wallet import SDK
Decrypts Blockchain online wallet backups and recovers their private keys
"""

from .version import __version__
from .crypto import (
    BackupGeneration,
    BackupPayload,
    CipherContext,
    InMemoryKeyStore,
    KeyStore,
    MAINNET,
    NetworkParameters,
    RecoveredKey,
    SecondPasswordUnwrapper,
    SecureKeyStorage,
    TESTNET,
    decode_private_key,
    derive_and_decrypt,
    extract_payload,
    get_default_storage,
    read_backup_file,
)
from .document import (
    KeyRecord,
    WalletDocument,
    load_wallet_document,
    parse_wallet_document,
)
from .importer import (
    ImportResult,
    ImportState,
    WalletImportSession,
    import_wallet,
)
from .config import ImportConfig, load_import_config
from .exceptions import (
    BcWalletSDKError,
    ValidationError,
    PasswordRequired,
    FormatDetectedNeedsPassword,
    SecondaryPasswordRequired,
    PasswordMissing,
    DecryptionFailed,
    SecondaryPasswordIncorrect,
    MalformedDocument,
    KeyRecordError,
    KeyAddressMismatch,
    InvalidPrivateKey,
    BackupError,
    UnsupportedBackupVersion,
    StorageError,
    ConfigError,
)


def import_wallet_file(file_path, password, key_store, **kwargs) -> ImportResult:
    """
    Read a backup file and import it

    Keyword arguments are passed to :func:`import_wallet`.
    """
    return import_wallet(read_backup_file(file_path), password, key_store, **kwargs)


# Public API exports
__all__ = [
    '__version__',
    # Pipeline
    'import_wallet',
    'import_wallet_file',
    'WalletImportSession',
    'ImportState',
    'ImportResult',
    'BackupGeneration',
    'BackupPayload',
    'CipherContext',
    'extract_payload',
    'read_backup_file',
    'derive_and_decrypt',
    'decode_private_key',
    'SecondPasswordUnwrapper',
    # Data model
    'KeyRecord',
    'WalletDocument',
    'load_wallet_document',
    'parse_wallet_document',
    'RecoveredKey',
    'NetworkParameters',
    'MAINNET',
    'TESTNET',
    # Storage
    'KeyStore',
    'InMemoryKeyStore',
    'SecureKeyStorage',
    'get_default_storage',
    # Configuration
    'ImportConfig',
    'load_import_config',
    # Exceptions
    'BcWalletSDKError',
    'ValidationError',
    'PasswordRequired',
    'FormatDetectedNeedsPassword',
    'SecondaryPasswordRequired',
    'PasswordMissing',
    'DecryptionFailed',
    'SecondaryPasswordIncorrect',
    'MalformedDocument',
    'KeyRecordError',
    'KeyAddressMismatch',
    'InvalidPrivateKey',
    'BackupError',
    'UnsupportedBackupVersion',
    'StorageError',
    'ConfigError',
]
