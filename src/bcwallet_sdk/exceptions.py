"""
Exception classes for the Blockchain wallet import SDK
"""

from typing import Optional, Dict, Any


class BcWalletSDKError(Exception):
    """Base exception for all wallet import SDK errors"""

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ValidationError(BcWalletSDKError):
    """Exception raised for invalid arguments"""
    pass


class PasswordRequired(BcWalletSDKError):
    """
    Control signal: the import cannot continue without another credential.

    Not a failure. Callers catch it, obtain the credential and invoke the
    import again (or resume the session).
    """
    pass


class FormatDetectedNeedsPassword(PasswordRequired):
    """The V2 backup envelope was recognized and the main password is needed"""

    def __init__(self, message: str = "Backup format recognized - main password required",
                 error_code: str = "PRIMARY_PASSWORD_REQUIRED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class SecondaryPasswordRequired(PasswordRequired):
    """The wallet uses double encryption and the second password is needed"""

    def __init__(self, message: str = "Wallet is double encrypted - second password required",
                 error_code: str = "SECONDARY_PASSWORD_REQUIRED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class PasswordMissing(BcWalletSDKError):
    """No main password is available to decrypt the backup"""

    def __init__(self, message: str = "Password missing for encrypted backup",
                 error_code: str = "PASSWORD_MISSING", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class DecryptionFailed(BcWalletSDKError):
    """Exception raised when a cipher layer rejects the password or the input"""
    pass


class SecondaryPasswordIncorrect(DecryptionFailed):
    """The second password does not match the hash stored in the wallet"""
    pass


class MalformedDocument(BcWalletSDKError):
    """Exception raised when backup or wallet JSON lacks required structure"""
    pass


class KeyRecordError(BcWalletSDKError):
    """Exception raised when a key record cannot be turned into a private key"""

    def __init__(self, message: str, error_code: str = "KEY_RECORD_ERROR",
                 address: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
        self.address = address


class KeyAddressMismatch(KeyRecordError):
    """Neither compression hypothesis reproduces the declared address"""
    pass


class InvalidPrivateKey(KeyRecordError):
    """The private field is not a valid Base58 secp256k1 scalar"""
    pass


class BackupError(BcWalletSDKError):
    """Exception raised for backup file access errors"""
    pass


class UnsupportedBackupVersion(BackupError):
    """Exception raised for backup envelopes newer than this SDK understands"""
    pass


class StorageError(BcWalletSDKError):
    """Exception raised for key storage related errors"""
    pass


class ConfigError(BcWalletSDKError):
    """Exception raised for configuration loading and validation errors"""
    pass
