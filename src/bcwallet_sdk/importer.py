"""
Wallet import orchestration

Two entry points share the same pipeline:

- :func:`import_wallet` runs an import in one call and raises
  :class:`~bcwallet_sdk.exceptions.FormatDetectedNeedsPassword`,
  :class:`~bcwallet_sdk.exceptions.PasswordMissing` or
  :class:`~bcwallet_sdk.exceptions.SecondaryPasswordRequired` when a
  credential is missing, for callers that re-invoke with more credentials.
- :class:`WalletImportSession` is a resumable state machine for interactive
  callers: it reports which credential it needs and resumes when given it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .config import ImportConfig
from .crypto.backup import BackupPayload, extract_payload
from .crypto.cipher import derive_and_decrypt
from .crypto.double_encryption import SecondPasswordUnwrapper
from .crypto.keys import MAINNET, NetworkParameters, RecoveredKey, decode_private_key
from .crypto.storage import KeyStore
from .document import KeyRecord, WalletDocument, load_wallet_document
from .exceptions import (
    BcWalletSDKError,
    PasswordMissing,
    PasswordRequired,
    SecondaryPasswordRequired,
    ValidationError,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


@dataclass
class ImportResult:
    """
    Outcome of an import run

    Attributes:
        imported: Number of keys handed to the key store, one per record even
            when records repeat an address
        skipped: Number of watch-only records
        keys: Recovered keys in record order
    """
    imported: int = 0
    skipped: int = 0
    keys: List[RecoveredKey] = field(default_factory=list)


def decrypt_wallet(payload: BackupPayload, password: str) -> WalletDocument:
    """Remove the outer encryption layer and parse the wallet document"""
    plaintext = derive_and_decrypt(payload.ciphertext_base64, password, payload.iteration_count)
    return load_wallet_document(plaintext)


def recover_key(record: KeyRecord,
                unwrapper: Optional[SecondPasswordUnwrapper] = None,
                network: NetworkParameters = MAINNET) -> RecoveredKey:
    """Turn one key record with a private field into a verified key"""
    private_field = record.private_field
    if unwrapper is not None:
        private_field = unwrapper.unwrap(private_field)

    key = decode_private_key(private_field, record.address, network)
    key.created_time = record.created_time
    key.label = record.label
    return key


def import_key_records(document: WalletDocument,
                       key_store: KeyStore,
                       unwrapper: Optional[SecondPasswordUnwrapper] = None,
                       progress: Optional[ProgressCallback] = None,
                       network: NetworkParameters = MAINNET) -> ImportResult:
    """
    Recover every key in the document and hand it to ``key_store``

    Watch-only records are counted as skipped. The first failing record
    aborts the run; keys already added stay in the store.
    """
    if document.double_encryption and unwrapper is None:
        raise SecondaryPasswordRequired()

    result = ImportResult()
    total = len(document.keys)

    for index, record in enumerate(document.keys):
        if record.is_watch_only:
            result.skipped += 1
            logger.debug(f"Skipping watch-only address {record.address}")
        else:
            key = recover_key(record, unwrapper if document.double_encryption else None, network)
            key_store.add_key(key, network)
            result.keys.append(key)
            result.imported += 1

        if progress is not None:
            progress(100 * index // total, record.address)

    logger.info(f"Wallet import finished: {result.imported} imported, {result.skipped} skipped")
    return result


def _build_unwrapper(document: WalletDocument,
                     second_password: Optional[str],
                     config: ImportConfig) -> Optional[SecondPasswordUnwrapper]:
    if not document.double_encryption:
        return None
    return SecondPasswordUnwrapper.from_document(
        document,
        second_password,
        default_iterations=config.default_second_password_iterations,
        verify_hash=config.verify_second_password_hash,
    )


def import_wallet(backup_text: str,
                  password: Optional[str],
                  key_store: KeyStore,
                  *,
                  second_password: Optional[str] = None,
                  progress: Optional[ProgressCallback] = None,
                  network: Optional[NetworkParameters] = None,
                  config: Optional[ImportConfig] = None) -> ImportResult:
    """
    Import all keys from a wallet backup

    Args:
        backup_text: Raw backup file contents
        password: Main password (None to probe the format)
        key_store: Receiver of recovered keys
        second_password: Second password for double encrypted wallets
        progress: Called as ``progress(percent, address)`` after each record
        network: Network parameters (defaults to the configured network)
        config: Import configuration (defaults apply when None)

    Returns:
        ImportResult: Counts and recovered keys

    Raises:
        FormatDetectedNeedsPassword: V2 backup and no password
        PasswordMissing: V1 backup and no password
        SecondaryPasswordRequired: Double encrypted wallet and no second password
        DecryptionFailed: Wrong password or corrupted data
        MalformedDocument: Wallet JSON lacks required structure
        KeyRecordError: A private key does not match its address
    """
    config = config or ImportConfig()
    network = network or config.network_parameters

    payload = extract_payload(backup_text, password, config.default_v1_iterations)
    document = decrypt_wallet(payload, password)
    logger.info(f"Decrypted wallet with {len(document.keys)} key records "
                f"({document.private_key_count} with private keys)")

    unwrapper = _build_unwrapper(document, second_password, config)
    return import_key_records(document, key_store, unwrapper, progress, network)


class ImportState(Enum):
    """States of a :class:`WalletImportSession`"""
    NEED_PRIMARY_PASSWORD = 'need_primary_password'
    NEED_SECONDARY_PASSWORD = 'need_secondary_password'
    READY = 'ready'
    COMPLETED = 'completed'
    FAILED = 'failed'


class WalletImportSession:
    """
    Resumable import of one backup file

    Typical use::

        session = WalletImportSession(text, store)
        state = session.start()
        if state is ImportState.NEED_PRIMARY_PASSWORD:
            state = session.provide_password(ask("Password"))
        if state is ImportState.NEED_SECONDARY_PASSWORD:
            state = session.provide_second_password(ask("Second password"))
        result = session.run()

    Fatal errors move the session to FAILED and are re-raised.
    """

    def __init__(self,
                 backup_text: str,
                 key_store: KeyStore,
                 *,
                 progress: Optional[ProgressCallback] = None,
                 network: Optional[NetworkParameters] = None,
                 config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()
        self.network = network or self.config.network_parameters
        self.key_store = key_store
        self.progress = progress
        self.state: Optional[ImportState] = None
        self.pending_signal: Optional[BcWalletSDKError] = None
        self.result: Optional[ImportResult] = None
        self.error: Optional[BcWalletSDKError] = None

        self._backup_text = backup_text
        self._payload: Optional[BackupPayload] = None
        self._document: Optional[WalletDocument] = None
        self._unwrapper: Optional[SecondPasswordUnwrapper] = None

    def _require(self, *states: ImportState) -> None:
        if self.state not in states:
            current = self.state.value if self.state else 'not started'
            raise ValidationError(f"Operation not allowed in session state: {current}", "INVALID_SESSION_STATE")

    def _fail(self, error: BcWalletSDKError) -> None:
        self.state = ImportState.FAILED
        self.error = error
        logger.error(f"Wallet import failed: {error}")

    def start(self, password: Optional[str] = None) -> ImportState:
        """Detect the backup format, decrypting straight away if ``password`` is given"""
        self._require(None)
        try:
            self._payload = extract_payload(self._backup_text, password, self.config.default_v1_iterations)
        except (PasswordRequired, PasswordMissing) as signal:
            self.pending_signal = signal
            self.state = ImportState.NEED_PRIMARY_PASSWORD
            return self.state
        except BcWalletSDKError as e:
            self._fail(e)
            raise
        return self._open(password)

    def provide_password(self, password: str) -> ImportState:
        """Resume with the main password"""
        self._require(ImportState.NEED_PRIMARY_PASSWORD)
        if password is None:
            raise ValidationError("Password must not be None", "INVALID_PASSWORD")
        if self._payload is None:
            try:
                self._payload = extract_payload(self._backup_text, password, self.config.default_v1_iterations)
            except BcWalletSDKError as e:
                self._fail(e)
                raise
        return self._open(password)

    def _open(self, password: str) -> ImportState:
        try:
            self._document = decrypt_wallet(self._payload, password)
        except BcWalletSDKError as e:
            self._fail(e)
            raise

        self.pending_signal = None
        if self._document.double_encryption:
            self.pending_signal = SecondaryPasswordRequired()
            self.state = ImportState.NEED_SECONDARY_PASSWORD
        else:
            self.state = ImportState.READY
        return self.state

    def provide_second_password(self, second_password: str) -> ImportState:
        """Resume with the second password of a double encrypted wallet"""
        self._require(ImportState.NEED_SECONDARY_PASSWORD)
        if second_password is None:
            raise ValidationError("Second password must not be None", "INVALID_PASSWORD")
        try:
            self._unwrapper = _build_unwrapper(self._document, second_password, self.config)
        except BcWalletSDKError as e:
            self._fail(e)
            raise
        self.pending_signal = None
        self.state = ImportState.READY
        return self.state

    @property
    def document(self) -> Optional[WalletDocument]:
        return self._document

    def run(self) -> ImportResult:
        """Import every key record; only allowed in READY"""
        self._require(ImportState.READY)
        try:
            self.result = import_key_records(
                self._document, self.key_store, self._unwrapper, self.progress, self.network
            )
        except BcWalletSDKError as e:
            self._fail(e)
            raise
        finally:
            self._unwrapper = None
        self.state = ImportState.COMPLETED
        return self.result
