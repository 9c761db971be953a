"""
Shared helpers for building encrypted wallet backups in tests

The SDK only decrypts, so the encrypt direction lives here.
"""

import base64
import json
import os

import base58
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from bcwallet_sdk.crypto.double_encryption import second_password_hash
from bcwallet_sdk.crypto.keys import scalar_to_address

# Well-known addresses for the private scalar 1
SCALAR_ONE_UNCOMPRESSED = "1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZm"
SCALAR_ONE_COMPRESSED = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"

TEST_ITERATIONS = 10


def encrypt_payload(plaintext, password, iterations=TEST_ITERATIONS, iv=None):
    """Encrypt the way the wallet service does: base64(iv || AES-CBC(ISO 10126))"""
    iv = iv or os.urandom(16)
    key = PBKDF2HMAC(algorithm=hashes.SHA1(), length=32, salt=iv, iterations=iterations).derive(
        password.encode('utf-8')
    )
    data = plaintext.encode('utf-8')
    pad_length = 16 - len(data) % 16
    padded = data + os.urandom(pad_length - 1) + bytes([pad_length])
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(iv + ciphertext).decode('ascii')


def base58_scalar(scalar):
    """Base58 private key field as the wallet service writes it"""
    return base58.b58encode(scalar.to_bytes(32, 'big')).decode('ascii')


def key_entry(scalar, compressed=False, **extra):
    entry = {
        'addr': scalar_to_address(scalar, compressed),
        'priv': base58_scalar(scalar),
    }
    entry.update(extra)
    return entry


def v1_backup(wallet, password):
    return encrypt_payload(json.dumps(wallet), password, 10)


def v2_backup(wallet, password, iterations=TEST_ITERATIONS, **extra):
    envelope = {'pbkdf2_iterations': iterations, 'payload': encrypt_payload(json.dumps(wallet), password, iterations)}
    envelope.update(extra)
    return json.dumps(envelope)


def double_encrypted_wallet(scalars, shared_key, second_password, iterations=TEST_ITERATIONS,
                            with_hash=True):
    """Wallet dict whose priv fields are encrypted with sharedKey + second password"""
    keys = []
    for scalar in scalars:
        keys.append({
            'addr': scalar_to_address(scalar, False),
            'priv': encrypt_payload(base58_scalar(scalar), shared_key + second_password, iterations),
        })
    wallet = {
        'guid': 'a7c2b7a2-0f43-4c1e-9d4b-1f1c6f1f0e11',
        'sharedKey': shared_key,
        'double_encryption': True,
        'options': {'pbkdf2_iterations': iterations},
        'keys': keys,
    }
    if with_hash:
        wallet['dpasswordhash'] = second_password_hash(shared_key, second_password, iterations)
    return wallet


@pytest.fixture
def simple_wallet():
    """Wallet with one spendable key (scalar 1, uncompressed) and one watch-only key"""
    return {
        'guid': '0b3c5d8e-2a2f-4b7e-8f3a-6b2d1c9e4f00',
        'sharedKey': 'e1f2a3b4-c5d6-4e7f-8a9b-0c1d2e3f4a5b',
        'keys': [
            {'addr': SCALAR_ONE_UNCOMPRESSED, 'priv': base58_scalar(1), 'label': 'savings',
             'created_time': 1388534400},
            {'addr': scalar_to_address(7, True)},
        ],
    }
