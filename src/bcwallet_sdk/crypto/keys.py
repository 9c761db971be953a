"""
secp256k1 key recovery for Blockchain wallet key records

The wallet service stores each private key as the raw 256-bit scalar written
directly in Base58, without the wallet-import-format envelope, so the record
does not say whether the matching public key is compressed. The flag is
recovered by rebuilding the P2PKH address both ways and keeping the one that
matches the address stored next to the key.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Optional, Tuple

import base58
from Crypto.Hash import RIPEMD160
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..exceptions import InvalidPrivateKey, KeyAddressMismatch, ValidationError

# secp256k1 group order
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
PRIVATE_KEY_LENGTH = 32


@dataclass(frozen=True)
class NetworkParameters:
    """
    Address and WIF version bytes for a Bitcoin network

    Attributes:
        name: Network name ('mainnet' or 'testnet')
        address_version: P2PKH address version byte
        wif_version: Wallet import format version byte
    """
    name: str
    address_version: int
    wif_version: int


MAINNET = NetworkParameters(name='mainnet', address_version=0x00, wif_version=0x80)
TESTNET = NetworkParameters(name='testnet', address_version=0x6F, wif_version=0xEF)

SUPPORTED_NETWORKS = {
    MAINNET.name: MAINNET,
    TESTNET.name: TESTNET,
}


def get_network(name: str) -> NetworkParameters:
    """Look up network parameters by name"""
    try:
        return SUPPORTED_NETWORKS[name]
    except KeyError:
        raise ValidationError(f"Unsupported network: {name}", "UNSUPPORTED_NETWORK")


@dataclass
class RecoveredKey:
    """
    A private key recovered from a wallet key record.

    Attributes:
        private_scalar: The secp256k1 private scalar
        compressed: Whether the address was derived from the compressed public key
        address: The P2PKH address the key was verified against
        created_time: Creation time recorded by the wallet (optional)
        label: Label recorded by the wallet (optional)
    """
    private_scalar: int = field(repr=False)
    compressed: bool
    address: str
    created_time: Optional[int] = None
    label: Optional[str] = None

    def private_key_bytes(self) -> bytes:
        return self.private_scalar.to_bytes(PRIVATE_KEY_LENGTH, 'big')

    def public_key(self) -> bytes:
        return public_key_bytes(self.private_scalar, self.compressed)

    def to_wif(self, network: NetworkParameters = MAINNET) -> str:
        """Encode the key in wallet import format for the given network"""
        payload = bytes([network.wif_version]) + self.private_key_bytes()
        if self.compressed:
            payload += b'\x01'
        return base58.b58encode_check(payload).decode('ascii')


def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of SHA-256"""
    h = RIPEMD160.new()
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def public_key_bytes(private_scalar: int, compressed: bool) -> bytes:
    """Serialize the public point for a scalar in SEC1 form"""
    private_key = ec.derive_private_key(private_scalar, ec.SECP256K1())
    point_format = (serialization.PublicFormat.CompressedPoint if compressed
                    else serialization.PublicFormat.UncompressedPoint)
    return private_key.public_key().public_bytes(serialization.Encoding.X962, point_format)


def public_key_to_address(public_key: bytes, network: NetworkParameters = MAINNET) -> str:
    """Build the Base58Check P2PKH address for a serialized public key"""
    payload = bytes([network.address_version]) + hash160(public_key)
    return base58.b58encode_check(payload).decode('ascii')


def scalar_to_address(private_scalar: int, compressed: bool, network: NetworkParameters = MAINNET) -> str:
    return public_key_to_address(public_key_bytes(private_scalar, compressed), network)


def parse_wif(wif: str) -> Tuple[int, bool, NetworkParameters]:
    """
    Decode a wallet import format string

    Returns:
        Tuple of (private_scalar, compressed, network)
    """
    try:
        payload = base58.b58decode_check(wif)
    except ValueError as e:
        raise InvalidPrivateKey(f"Invalid WIF key: {e}", "INVALID_WIF") from e

    network = next((n for n in SUPPORTED_NETWORKS.values() if n.wif_version == payload[0]), None)
    if network is None:
        raise InvalidPrivateKey(f"Unknown WIF version byte: {payload[0]:#04x}", "INVALID_WIF")

    body = payload[1:]
    if len(body) == PRIVATE_KEY_LENGTH + 1 and body[-1] == 0x01:
        return int.from_bytes(body[:-1], 'big'), True, network
    if len(body) == PRIVATE_KEY_LENGTH:
        return int.from_bytes(body, 'big'), False, network
    raise InvalidPrivateKey("Invalid WIF key length", "INVALID_WIF")


def parse_base58_scalar(base58_private_key: str) -> int:
    """
    Decode the service's Base58 private key field into a scalar

    Raises:
        InvalidPrivateKey: If the text is not Base58 or the scalar is outside
            the curve's valid range
    """
    if not isinstance(base58_private_key, str) or not base58_private_key.strip():
        raise InvalidPrivateKey("Private key field must be a non-empty string", "INVALID_PRIVATE_KEY_FIELD")

    try:
        raw = base58.b58decode(base58_private_key.strip())
    except ValueError as e:
        raise InvalidPrivateKey(f"Private key is not valid Base58: {e}", "INVALID_BASE58") from e

    scalar = int.from_bytes(raw, 'big')
    if not 1 <= scalar < SECP256K1_ORDER:
        raise InvalidPrivateKey("Private key is outside the secp256k1 range", "PRIVATE_KEY_OUT_OF_RANGE")
    return scalar


def decode_private_key(base58_private_key: str,
                       expected_address: str,
                       network: NetworkParameters = MAINNET) -> RecoveredKey:
    """
    Reconstruct a private key and its compression flag

    The uncompressed hypothesis is tried first, then the compressed one. A
    key is only returned when it reproduces ``expected_address``.

    Args:
        base58_private_key: Base58 text of the raw scalar
        expected_address: The address recorded alongside the key
        network: Network whose address version byte is used

    Returns:
        RecoveredKey: The key with its compression flag resolved

    Raises:
        InvalidPrivateKey: If the field cannot be decoded
        KeyAddressMismatch: If neither hypothesis reproduces the address
    """
    scalar = parse_base58_scalar(base58_private_key)

    for compressed in (False, True):
        if scalar_to_address(scalar, compressed, network) == expected_address:
            return RecoveredKey(private_scalar=scalar, compressed=compressed, address=expected_address)

    raise KeyAddressMismatch(
        f"Private key does not match address {expected_address}",
        "KEY_ADDRESS_MISMATCH",
        address=expected_address
    )
