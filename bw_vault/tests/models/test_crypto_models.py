import pytest

from bw_vault.models.crypto import EncryptionType, KdfParams, KdfType, Key, KeySet


def test_encryption_type_key_sizes() -> None:
    assert EncryptionType.AES_CBC_256.key_size == 32
    assert EncryptionType.AES_CBC_128_HMAC_SHA256.key_size == 16
    assert EncryptionType.AES_CBC_256_HMAC_SHA256.key_size == 32
    assert EncryptionType.RSA_OAEP_SHA1.key_size == 0


def test_encryption_type_oaep_hashes() -> None:
    assert EncryptionType.RSA_OAEP_SHA256.oaep_hash == "sha256"
    assert EncryptionType.RSA_OAEP_SHA256_HMAC_SHA256.oaep_hash == "sha256"
    assert EncryptionType.RSA_OAEP_SHA1.oaep_hash == "sha1"
    assert EncryptionType.RSA_OAEP_SHA1_HMAC_SHA256.oaep_hash == "sha1"
    assert EncryptionType.AES_CBC_256_HMAC_SHA256.oaep_hash is None


@pytest.mark.parametrize(
    ("enc_type", "expected"),
    [
        (EncryptionType.AES_CBC_256, (2, 3)),
        (EncryptionType.AES_CBC_256_HMAC_SHA256, (3,)),
        (EncryptionType.RSA_OAEP_SHA1, (1, 2)),
        (EncryptionType.RSA_OAEP_SHA256_HMAC_SHA256, (2,)),
    ],
)
def test_encryption_type_part_counts(enc_type: EncryptionType, expected: tuple[int, ...]) -> None:
    assert enc_type.part_counts == expected


def test_kdf_params_from_camel_case_prelogin() -> None:
    params = KdfParams.from_prelogin(
        {"kdf": 1, "kdfIterations": 3, "kdfMemory": 64, "kdfParallelism": 4}
    )

    assert params == KdfParams(kdf=KdfType.ARGON2ID, iterations=3, memory_mib=64, parallelism=4)


def test_kdf_params_from_pascal_case_prelogin() -> None:
    params = KdfParams.from_prelogin({"Kdf": 0, "KdfIterations": 600000})

    assert params.kdf == KdfType.PBKDF2_SHA256
    assert params.iterations == 600000
    assert params.memory_mib is None


def test_key_mac_key_prefers_explicit_mac() -> None:
    key = Key(key=bytes(64), mac=b"\x01" * 32)

    assert key.mac_key == b"\x01" * 32


def test_key_mac_key_uses_upper_half_of_64_byte_key() -> None:
    material = bytes(range(64))

    assert Key(key=material).mac_key == material[32:]


def test_key_mac_key_is_none_for_short_key_without_mac() -> None:
    assert Key(key=bytes(32)).mac_key is None


def test_key_repr_hides_material() -> None:
    key = Key(key=b"\xaa" * 32, mac=b"\xbb" * 32)

    assert "aa" not in repr(key)
    assert "32 bytes" in repr(key)


def test_key_set_clear_drops_everything() -> None:
    key_set = KeySet(
        master_key=b"m" * 32,
        master_password_hash="hash",
        encryption_key=Key(key=bytes(32), mac=bytes(32)),
        user_key=Key(key=bytes(32), mac=bytes(32)),
        org_keys={"org1": Key(key=bytes(64))},
    )

    key_set.clear()

    assert key_set.master_key is None
    assert key_set.master_password_hash is None
    assert key_set.encryption_key is None
    assert key_set.user_key is None
    assert key_set.org_keys == {}


def test_key_set_repr_lists_present_keys_only() -> None:
    key_set = KeySet(user_key=Key(key=bytes(32)))

    assert repr(key_set) == "KeySet(present=['user_key'], org_keys=0)"
