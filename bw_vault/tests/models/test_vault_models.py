import pytest

from bw_vault.models.vault import (
    CardData,
    Cipher,
    CipherType,
    CustomField,
    FieldType,
    LoginData,
    LoginUri,
    SshKeyData,
    SyncSnapshot,
    wire_name,
)

LOGIN_JSON = {
    "id": "rec-1",
    "type": 1,
    "organizationId": "org1",
    "folderId": "folder-1",
    "key": None,
    "name": "2.name",
    "notes": None,
    "favorite": True,
    "revisionDate": "2025-01-01T00:00:00.000Z",
    "login": {
        "username": "2.user",
        "password": "2.pass",
        "totp": None,
        "uri": "2.uri",
        "uris": [{"uri": "2.uri", "uriChecksum": "2.sum", "match": 0}],
    },
    "fields": [{"name": "2.fname", "value": "2.fvalue", "type": 1, "linkedId": None}],
    "reprompt": 0,
}


def test_wire_name_converts_snake_case() -> None:
    assert wire_name("organization_id") == "organizationId"
    assert wire_name("passport_number") == "passportNumber"
    assert wire_name("name") == "name"


def test_cipher_from_api_builds_login_payload() -> None:
    cipher = Cipher.from_api(LOGIN_JSON)

    assert cipher.type == CipherType.LOGIN
    assert cipher.organization_id == "org1"
    assert cipher.favorite is True
    assert cipher.login == LoginData(
        username="2.user",
        password="2.pass",
        uri="2.uri",
        uris=(LoginUri(uri="2.uri", uri_checksum="2.sum", match=0),),
    )
    assert cipher.fields == (CustomField(name="2.fname", value="2.fvalue", type=FieldType.HIDDEN),)
    assert cipher.card is None


def test_cipher_keeps_raw_json_out_of_equality() -> None:
    first = Cipher.from_api(LOGIN_JSON)
    second = Cipher.from_api({**LOGIN_JSON, "reprompt": 1})

    assert first == second
    assert second.raw["reprompt"] == 1


def test_cipher_to_api_uses_wire_names() -> None:
    data = Cipher.from_api(LOGIN_JSON).to_api()

    assert data["organizationId"] == "org1"
    assert data["folderId"] == "folder-1"
    assert data["login"]["uris"] == [{"uri": "2.uri", "uriChecksum": "2.sum", "match": 0}]
    assert data["fields"][0] == {
        "name": "2.fname",
        "value": "2.fvalue",
        "type": 1,
        "linkedId": None,
    }


def test_secure_note_to_api_includes_note_type() -> None:
    cipher = Cipher(type=CipherType.SECURE_NOTE, name="2.note")

    assert cipher.to_api()["secureNote"] == {"type": 0}
    assert cipher.payload is None


def test_ssh_key_payload_from_api() -> None:
    cipher = Cipher.from_api(
        {
            "id": "rec-2",
            "type": 5,
            "name": "2.ssh",
            "sshKey": {"privateKey": "2.priv", "publicKey": "2.pub", "keyFingerprint": "2.fp"},
        }
    )

    assert cipher.ssh_key == SshKeyData(
        private_key="2.priv", public_key="2.pub", key_fingerprint="2.fp"
    )


def test_payload_type_mismatch_raises_error() -> None:
    with pytest.raises(ValueError, match="does not match"):
        Cipher(type=CipherType.LOGIN, payload=CardData(number="4111"))


def test_payload_attribute_name_maps_wire_keys() -> None:
    assert CardData.attribute_name("cardholderName") == "cardholder_name"
    assert CardData.attribute_name("unknown") is None


def test_sync_snapshot_from_api() -> None:
    snapshot = SyncSnapshot.from_api(
        {
            "profile": {"organizations": [{"id": "org1", "name": "Org", "key": "4.abc"}]},
            "ciphers": [LOGIN_JSON],
        }
    )

    assert len(snapshot.ciphers) == 1
    assert snapshot.organizations[0].id == "org1"
    assert snapshot.organizations[0].key == "4.abc"
    assert snapshot.decrypted is False


def test_sync_snapshot_index_of() -> None:
    snapshot = SyncSnapshot.from_api({"ciphers": [LOGIN_JSON]})

    assert snapshot.index_of("rec-1") == 0
    assert snapshot.index_of("missing") is None


def test_sync_snapshot_skips_unknown_record_types() -> None:
    future = {**LOGIN_JSON, "id": "rec-9", "type": 99}

    snapshot = SyncSnapshot.from_api({"ciphers": [future, LOGIN_JSON]})

    assert [c.id for c in snapshot.ciphers] == ["rec-1"]


def test_custom_field_keeps_unknown_type() -> None:
    field = CustomField.from_api({"name": "2.n", "value": "2.v", "type": 7})

    assert field.type == 7
    assert not isinstance(field.type, FieldType)
    assert field.to_api()["type"] == 7
