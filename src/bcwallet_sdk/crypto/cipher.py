"""
Password based decryption for Blockchain wallet backups

The service encrypts both the whole wallet file and, for double encrypted
wallets, each private key field with the same fixed scheme:

    base64( iv[16] || AES-256-CBC(key, iv, plaintext || ISO 10126 padding) )

where ``key = PBKDF2-HMAC-SHA1(password, salt=iv, iterations, 32 bytes)``.
This module implements the decrypt direction of that scheme only.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import DecryptionFailed, ValidationError

# Scheme constants
AES_BLOCK_SIZE = 16
IV_LENGTH = 16
DERIVED_KEY_LENGTH = 32  # AES-256


@dataclass
class CipherContext:
    """
    Per-call decryption context

    Attributes:
        iv: Initialization vector, also used as the PBKDF2 salt
        derived_key: 256-bit AES key, kept mutable so it can be wiped
        padding: Padding scheme removed after decryption
    """
    iv: bytes
    derived_key: bytearray
    padding: str = 'ISO10126'

    def clear(self) -> None:
        """Overwrite the derived key in place (best effort)"""
        for i in range(len(self.derived_key)):
            self.derived_key[i] = 0


def password_to_pkcs5_bytes(password: str) -> bytes:
    """
    Convert a password to bytes the way PKCS#5 v2 PBKDF2 inputs are converted.

    Each Unicode code point is written as UTF-8. Unpaired surrogates have no
    UTF-8 form and are rejected.
    """
    if not isinstance(password, str):
        raise ValidationError("Password must be a string", "INVALID_PASSWORD_TYPE")
    try:
        return password.encode('utf-8')
    except UnicodeEncodeError as e:
        raise DecryptionFailed(
            "Password contains characters that cannot be converted for key derivation",
            "INVALID_PASSWORD_ENCODING"
        ) from e


def decode_ciphertext(ciphertext_base64: Union[str, bytes]) -> bytes:
    """Base64-decode a payload, ignoring embedded whitespace"""
    if isinstance(ciphertext_base64, str):
        ciphertext_base64 = ciphertext_base64.encode('ascii', 'replace')
    compact = b"".join(ciphertext_base64.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailed(f"Payload is not valid base64: {e}", "INVALID_BASE64") from e


def build_cipher_context(iv: bytes, password: str, iterations: int) -> CipherContext:
    """Derive the AES key for one decrypt call"""
    if not isinstance(iterations, int) or isinstance(iterations, bool) or iterations < 1:
        raise ValidationError(f"Iteration count must be a positive integer: {iterations!r}", "INVALID_ITERATIONS")
    if len(iv) != IV_LENGTH:
        raise DecryptionFailed(f"IV must be {IV_LENGTH} bytes", "INVALID_IV_LENGTH")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=DERIVED_KEY_LENGTH,
        salt=iv,
        iterations=iterations,
    )
    derived_key = bytearray(kdf.derive(password_to_pkcs5_bytes(password)))
    return CipherContext(iv=iv, derived_key=derived_key)


def remove_iso10126_padding(data: bytes) -> bytes:
    """
    Strip ISO 10126 padding.

    Only the final byte (the pad length) carries meaning; the filler bytes
    are random and are not checked.
    """
    if not data:
        raise DecryptionFailed("Decrypted data is empty", "PAD_BLOCK_CORRUPTED")
    pad_length = data[-1]
    if not 1 <= pad_length <= AES_BLOCK_SIZE:
        raise DecryptionFailed(
            "Pad block corrupted - wrong password or damaged backup",
            "PAD_BLOCK_CORRUPTED"
        )
    return data[:-pad_length]


def _aes_cbc_decrypt(context: CipherContext, ciphertext: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(context.derived_key), modes.CBC(context.iv)).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def derive_and_decrypt(ciphertext_base64: Union[str, bytes], password: str, iterations: int) -> str:
    """
    Decrypt a base64 payload produced by the wallet service

    Args:
        ciphertext_base64: Base64 text of ``iv || ciphertext``
        password: Password (or composed password for the inner layer)
        iterations: PBKDF2 iteration count

    Returns:
        str: UTF-8 plaintext

    Raises:
        DecryptionFailed: If the input is malformed or the padding is rejected
        ValidationError: If the iteration count is invalid
    """
    data = decode_ciphertext(ciphertext_base64)

    iv, ciphertext = data[:IV_LENGTH], data[IV_LENGTH:]
    if len(iv) != IV_LENGTH or not ciphertext:
        raise DecryptionFailed("Encrypted data is too short", "CIPHERTEXT_TOO_SHORT")
    if len(ciphertext) % AES_BLOCK_SIZE != 0:
        raise DecryptionFailed(
            f"Encrypted data length is not a multiple of the block size ({AES_BLOCK_SIZE})",
            "INVALID_CIPHERTEXT_LENGTH"
        )

    context = build_cipher_context(iv, password, iterations)
    try:
        padded = _aes_cbc_decrypt(context, ciphertext)
    except ValueError as e:
        raise DecryptionFailed(f"AES decryption failed: {e}", "DECRYPTION_FAILED") from e
    finally:
        context.clear()

    plaintext = remove_iso10126_padding(padded)
    try:
        return plaintext.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DecryptionFailed(
            "Decrypted data is not valid UTF-8 - wrong password?",
            "DECRYPTION_FAILED"
        ) from e
