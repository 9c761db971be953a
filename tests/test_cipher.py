"""
Unit tests for the wallet password cipher
"""

import base64
import hashlib
import os

import pytest

from bcwallet_sdk.crypto.cipher import (
    CipherContext,
    build_cipher_context,
    decode_ciphertext,
    derive_and_decrypt,
    password_to_pkcs5_bytes,
    remove_iso10126_padding,
    DERIVED_KEY_LENGTH,
)
from bcwallet_sdk.exceptions import DecryptionFailed, ValidationError

from conftest import encrypt_payload

LONG_PLAINTEXT = '{"guid": "wallet", "keys": [' + ", ".join(['{"addr": "1abc"}'] * 8) + ']}'


class TestPasswordBytes:
    """Test cases for password conversion"""

    def test_ascii_password(self):
        assert password_to_pkcs5_bytes("secret") == b"secret"

    def test_non_ascii_password_uses_utf8(self):
        assert password_to_pkcs5_bytes("pässwörd€") == "pässwörd€".encode('utf-8')

    def test_astral_code_point(self):
        assert password_to_pkcs5_bytes("key\U0001F511") == b"key\xf0\x9f\x94\x91"

    def test_lone_surrogate_rejected(self):
        with pytest.raises(DecryptionFailed) as exc_info:
            password_to_pkcs5_bytes("abc\ud800")
        assert exc_info.value.error_code == "INVALID_PASSWORD_ENCODING"

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError):
            password_to_pkcs5_bytes(b"bytes")


class TestCipherContext:
    """Test cases for key derivation"""

    def test_matches_reference_pbkdf2(self):
        iv = bytes(range(16))
        context = build_cipher_context(iv, "password", 10)

        expected = hashlib.pbkdf2_hmac('sha1', b"password", iv, 10, DERIVED_KEY_LENGTH)
        assert bytes(context.derived_key) == expected
        assert context.iv == iv
        assert context.padding == 'ISO10126'

    def test_clear_wipes_key(self):
        context = build_cipher_context(os.urandom(16), "password", 1)
        context.clear()
        assert context.derived_key == bytearray(DERIVED_KEY_LENGTH)

    @pytest.mark.parametrize("iterations", [0, -5, True, 2.5])
    def test_invalid_iterations(self, iterations):
        with pytest.raises(ValidationError) as exc_info:
            build_cipher_context(os.urandom(16), "password", iterations)
        assert exc_info.value.error_code == "INVALID_ITERATIONS"

    def test_wrong_iv_length(self):
        with pytest.raises(DecryptionFailed):
            build_cipher_context(b"short", "password", 10)

    def test_context_is_dataclass(self):
        context = CipherContext(iv=b"\x00" * 16, derived_key=bytearray(b"\x01" * 32))
        assert context.padding == 'ISO10126'


class TestIso10126Padding:
    """Test cases for padding removal"""

    def test_removes_declared_length(self):
        data = b"hello world" + os.urandom(4) + bytes([5])
        assert remove_iso10126_padding(data) == b"hello world"

    def test_full_padding_block(self):
        data = b"A" * 16 + os.urandom(15) + bytes([16])
        assert remove_iso10126_padding(data) == b"A" * 16

    def test_filler_bytes_not_checked(self):
        data = b"payload!" + b"\xff\x00\x13\x37\x42\x99\x01" + bytes([8])
        assert remove_iso10126_padding(data) == b"payload!"

    @pytest.mark.parametrize("last_byte", [0, 17, 255])
    def test_invalid_pad_length(self, last_byte):
        with pytest.raises(DecryptionFailed) as exc_info:
            remove_iso10126_padding(b"x" * 15 + bytes([last_byte]))
        assert exc_info.value.error_code == "PAD_BLOCK_CORRUPTED"

    def test_empty_data(self):
        with pytest.raises(DecryptionFailed):
            remove_iso10126_padding(b"")


class TestDeriveAndDecrypt:
    """Test cases for derive_and_decrypt"""

    def test_decrypts_service_payload(self):
        payload = encrypt_payload(LONG_PLAINTEXT, "correct horse", 10)
        assert derive_and_decrypt(payload, "correct horse", 10) == LONG_PLAINTEXT

    def test_non_ascii_password(self):
        payload = encrypt_payload("hello", "pässwörd€", 10)
        assert derive_and_decrypt(payload, "pässwörd€", 10) == "hello"

    def test_block_aligned_plaintext(self):
        plaintext = "0123456789abcdef" * 2
        payload = encrypt_payload(plaintext, "pw", 10)
        assert derive_and_decrypt(payload, "pw", 10) == plaintext

    def test_custom_iterations(self):
        payload = encrypt_payload("five thousand", "pw", 5000)
        assert derive_and_decrypt(payload, "pw", 5000) == "five thousand"

    def test_accepts_bytes_and_whitespace(self):
        payload = encrypt_payload("wrapped", "pw", 10)
        wrapped = "\n".join(payload[i:i + 20] for i in range(0, len(payload), 20)) + "\n"
        assert derive_and_decrypt(wrapped.encode('ascii'), "pw", 10) == "wrapped"

    def test_wrong_password(self):
        payload = encrypt_payload(LONG_PLAINTEXT, "right", 10)
        with pytest.raises(DecryptionFailed):
            derive_and_decrypt(payload, "wrong", 10)

    def test_wrong_iterations(self):
        payload = encrypt_payload(LONG_PLAINTEXT, "right", 10)
        with pytest.raises(DecryptionFailed):
            derive_and_decrypt(payload, "right", 11)

    def test_invalid_base64(self):
        with pytest.raises(DecryptionFailed) as exc_info:
            derive_and_decrypt("not*base64!", "pw", 10)
        assert exc_info.value.error_code == "INVALID_BASE64"

    def test_too_short(self):
        short = base64.b64encode(os.urandom(16)).decode('ascii')
        with pytest.raises(DecryptionFailed) as exc_info:
            derive_and_decrypt(short, "pw", 10)
        assert exc_info.value.error_code == "CIPHERTEXT_TOO_SHORT"

    def test_not_block_multiple(self):
        odd = base64.b64encode(os.urandom(16 + 20)).decode('ascii')
        with pytest.raises(DecryptionFailed) as exc_info:
            derive_and_decrypt(odd, "pw", 10)
        assert exc_info.value.error_code == "INVALID_CIPHERTEXT_LENGTH"

    def test_invalid_iterations(self):
        payload = encrypt_payload("x", "pw", 10)
        with pytest.raises(ValidationError):
            derive_and_decrypt(payload, "pw", 0)


class TestDecodeCiphertext:
    """Test cases for base64 handling"""

    def test_round_trip(self):
        raw = os.urandom(48)
        assert decode_ciphertext(base64.b64encode(raw).decode('ascii')) == raw

    def test_non_ascii_text(self):
        with pytest.raises(DecryptionFailed):
            decode_ciphertext("ünïcode")
