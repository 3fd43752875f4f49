"""
Cipher string codec.

Parses and serializes the `<type>.<b64>|<b64>[|<b64>]` format and performs
the AES-CBC/HMAC-SHA256 and RSA-OAEP operations behind it.

AES variants carry `iv|ciphertext|mac`, RSA variants `ciphertext[|mac]`.
"""

import base64
import binascii
import hashlib
import hmac
import os

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from bw_vault.exceptions import (
    DecryptionError,
    EncryptionError,
    EnvelopeFormatError,
    MissingKeyError,
)
from bw_vault.models.crypto import EncryptionType, EncString, Key, KeySet

_IV_SIZE = 16
_AES_BLOCK_BITS = 128
_ENCRYPT_KEY_SIZE = 32
_USER_KEY_SIZE = 64


def _b64decode(part: str) -> bytes:
    # Servers and older clients sometimes drop the trailing padding.
    try:
        return base64.b64decode(part + "=" * (-len(part) % 4), validate=True)
    except (binascii.Error, ValueError) as e:
        # ValueError: non-ASCII characters.
        raise EnvelopeFormatError("Invalid base64 in cipher string") from e


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def parse(value: str) -> EncString:
    """
    Parse a cipher string.

    Args:
        value: Cipher string, e.g. "2.<iv>|<ct>|<mac>".

    Returns:
        The parsed EncString.

    Raises:
        EnvelopeFormatError: If the string is empty, has an unknown type,
            a wrong number of parts, or invalid base64.
    """
    if not value:
        raise EnvelopeFormatError("Empty cipher string")

    head, sep, body = value.partition(".")
    if not sep or not head.isdigit():
        raise EnvelopeFormatError("Missing encryption type prefix")

    try:
        enc_type = EncryptionType(int(head))
    except ValueError as e:
        raise EnvelopeFormatError("Unknown encryption type", enc_type=head) from e

    parts = body.split("|")
    if len(parts) not in enc_type.part_counts:
        raise EnvelopeFormatError(
            "Unexpected number of parts", enc_type=int(enc_type), parts=len(parts)
        )

    decoded = [_b64decode(p) for p in parts]
    if enc_type.is_aes:
        return EncString(
            enc_type=enc_type,
            iv=decoded[0],
            data=decoded[1],
            mac=decoded[2] if len(decoded) > 2 else None,
        )
    return EncString(
        enc_type=enc_type,
        data=decoded[0],
        mac=decoded[1] if len(decoded) > 1 else None,
    )


def serialize(enc: EncString) -> str:
    """Inverse of parse()."""
    parts = []
    if enc.enc_type.is_aes:
        parts.append(_b64encode(enc.iv or b""))
    parts.append(_b64encode(enc.data))
    if enc.mac is not None:
        parts.append(_b64encode(enc.mac))
    return f"{int(enc.enc_type)}.{'|'.join(parts)}"


def decrypt(value: str | EncString, key: Key, *, verify_mac: bool = True) -> bytes:
    """
    Decrypt a cipher string.

    AES variants with a MAC are authenticated before decryption whenever
    `key` provides a MAC key. A string without a MAC is rejected for such a
    key.

    Args:
        value: Cipher string or parsed EncString.
        key: Symmetric key for AES variants, DER private key for RSA variants.
        verify_mac: Check the HMAC before decrypting.

    Returns:
        Plaintext bytes.

    Raises:
        EnvelopeFormatError: If the cipher string is malformed.
        DecryptionError: If the key is unsuitable, the MAC does not match or
            the ciphertext is corrupt.
    """
    enc = value if isinstance(value, EncString) else parse(value)
    if enc.enc_type.is_aes:
        return _decrypt_aes(enc, key, verify_mac=verify_mac)
    return _decrypt_rsa(enc, key)


def decrypt_to_str(value: str | EncString, key: Key, *, verify_mac: bool = True) -> str:
    """Decrypt a cipher string to UTF-8 text."""
    plaintext = decrypt(value, key, verify_mac=verify_mac)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Decrypted value is not valid UTF-8") from e


def encrypt(plaintext: str | bytes, key: Key) -> str:
    """
    Encrypt to an AES-256-CBC + HMAC-SHA256 cipher string (type 2).

    Args:
        plaintext: Text (UTF-8 encoded) or raw bytes.
        key: Key with at least 32 bytes of encryption key and a MAC key
            (explicit, or the upper half of a 64-byte key).

    Returns:
        Cipher string.

    Raises:
        EncryptionError: If the key is too short or no MAC key is available.
    """
    if len(key.key) < _ENCRYPT_KEY_SIZE:
        raise EncryptionError(
            "Key too short", key_length=len(key.key), required=_ENCRYPT_KEY_SIZE
        )
    mac_key = key.mac_key
    if mac_key is None:
        raise EncryptionError("MAC key missing (need a mac key or a 64-byte key)")

    data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
    iv = os.urandom(_IV_SIZE)

    padder = padding.PKCS7(_AES_BLOCK_BITS).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(
        algorithms.AES(key.key[:_ENCRYPT_KEY_SIZE]), modes.CBC(iv), backend=default_backend()
    ).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    mac = hmac.new(mac_key, iv + ciphertext, hashlib.sha256).digest()
    return serialize(
        EncString(
            enc_type=EncryptionType.AES_CBC_256_HMAC_SHA256,
            iv=iv,
            data=ciphertext,
            mac=mac,
        )
    )


def decode_user_keys(
    wrapped_user_key: str,
    wrapped_private_key: str | None,
    key_set: KeySet,
) -> KeySet:
    """
    Unwrap the user key and, if present, the RSA private key.

    Args:
        wrapped_user_key: User key encrypted with the encryption key.
        wrapped_private_key: DER private key encrypted with the user key.
        key_set: Key set holding the encryption key. Updated in place.

    Returns:
        The same key set with user_key (and private_key) populated.

    Raises:
        MissingKeyError: If the encryption key has not been derived.
        DecryptionError: If unwrapping fails.
    """
    if key_set.encryption_key is None:
        raise MissingKeyError("Encryption key not derived yet", key_type="encryption")

    material = decrypt(wrapped_user_key, key_set.encryption_key)
    if len(material) != _USER_KEY_SIZE:
        raise DecryptionError("Unexpected user key length", length=len(material))
    key_set.user_key = Key(key=material[:32], mac=material[32:64])

    if wrapped_private_key:
        key_set.private_key = Key(key=decrypt(wrapped_private_key, key_set.user_key))
    return key_set


def _decrypt_aes(enc: EncString, key: Key, *, verify_mac: bool) -> bytes:
    if enc.iv is None:
        raise DecryptionError("Missing IV for AES cipher string")

    key_size = enc.enc_type.key_size
    if len(key.key) < key_size:
        raise DecryptionError("Key too short", key_length=len(key.key), required=key_size)

    mac_key = key.mac_key
    if verify_mac and enc.mac is None and mac_key is not None:
        # A MAC-less string must not downgrade an authenticated key.
        raise DecryptionError("Missing MAC for authenticated key", enc_type=int(enc.enc_type))
    if verify_mac and enc.mac is not None and mac_key is not None:
        expected = hmac.new(mac_key, enc.iv + enc.data, hashlib.sha256).digest()
        if not hmac.compare_digest(expected, enc.mac):
            raise DecryptionError("MAC verification failed", enc_type=int(enc.enc_type))

    try:
        decryptor = Cipher(
            algorithms.AES(key.key[:key_size]), modes.CBC(enc.iv), backend=default_backend()
        ).decryptor()
        padded = decryptor.update(enc.data) + decryptor.finalize()
        unpadder = padding.PKCS7(_AES_BLOCK_BITS).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError("AES decryption failed", enc_type=int(enc.enc_type)) from e


def _decrypt_rsa(enc: EncString, key: Key) -> bytes:
    try:
        private_key = serialization.load_der_private_key(key.key, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise DecryptionError("Invalid RSA private key") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise DecryptionError("Private key is not an RSA key")

    algorithm = hashes.SHA256() if enc.enc_type.oaep_hash == "sha256" else hashes.SHA1()
    try:
        return private_key.decrypt(
            enc.data,
            asym_padding.OAEP(
                mgf=asym_padding.MGF1(algorithm=algorithm),
                algorithm=algorithm,
                label=None,
            ),
        )
    except ValueError as e:
        raise DecryptionError("RSA decryption failed", enc_type=int(enc.enc_type)) from e
