from dataclasses import replace

from bw_vault.core.patch import diff_record, merge_patch
from bw_vault.models.vault import (
    CardData,
    Cipher,
    CipherType,
    CustomField,
    LoginData,
    LoginUri,
)

BASE = Cipher(
    id="rec-1",
    type=CipherType.LOGIN,
    name="github",
    notes="notes",
    payload=LoginData(
        username="octocat",
        password="hunter2",
        uris=(LoginUri(uri="https://github.com", uri_checksum="sum"),),
    ),
    fields=(CustomField(name="pin", value="1234"),),
)


# diff_record


def test_identical_records_have_empty_diff() -> None:
    assert diff_record(BASE, replace(BASE)) == {}


def test_raw_json_is_ignored_by_diff() -> None:
    assert diff_record(BASE, replace(BASE, raw={"reprompt": 1})) == {}


def test_changed_scalar_is_reported_by_wire_name() -> None:
    patch = replace(BASE, name="GitHub", folder_id="folder-1")

    assert diff_record(BASE, patch) == {"name": "GitHub", "folderId": "folder-1"}


def test_changed_payload_field_is_diffed_individually() -> None:
    patch = replace(BASE, payload=replace(BASE.payload, password="correct-horse"))

    assert diff_record(BASE, patch) == {"login": {"password": "correct-horse"}}


def test_changed_uris_are_replaced_wholesale() -> None:
    uris = (
        LoginUri(uri="https://github.com", uri_checksum="sum"),
        LoginUri(uri="https://gist.github.com"),
    )
    patch = replace(BASE, payload=replace(BASE.payload, uris=uris))

    assert diff_record(BASE, patch) == {
        "login": {
            "uris": [
                {"uri": "https://github.com", "uriChecksum": "sum", "match": None},
                {"uri": "https://gist.github.com", "uriChecksum": None, "match": None},
            ]
        }
    }


def test_changed_custom_fields_are_replaced_wholesale() -> None:
    fields = (CustomField(name="pin", value="9999"), CustomField(name="extra", value="x"))
    patch = replace(BASE, fields=fields)

    diff = diff_record(BASE, patch)

    assert [f["value"] for f in diff["fields"]] == ["9999", "x"]


def test_payload_missing_in_base_is_taken_whole() -> None:
    base = replace(BASE, payload=None)

    diff = diff_record(base, BASE)

    assert diff["login"]["username"] == "octocat"
    assert diff["login"]["uris"][0]["uri"] == "https://github.com"


def test_payload_of_other_type_is_taken_whole() -> None:
    base = Cipher(type=CipherType.CARD, payload=CardData(number="4111"))
    patch = replace(BASE, type=CipherType.LOGIN)

    diff = diff_record(base, patch)

    assert diff["type"] == 1
    assert diff["login"]["password"] == "hunter2"


def test_cleared_value_is_reported_as_none() -> None:
    assert diff_record(BASE, replace(BASE, notes=None)) == {"notes": None}


# merge_patch


def test_merge_patch_recurses_into_mappings() -> None:
    original = {"name": "a", "login": {"username": "u", "passwordRevisionDate": "2024"}}

    merged = merge_patch(original, {"login": {"username": "v"}})

    assert merged == {"name": "a", "login": {"username": "v", "passwordRevisionDate": "2024"}}
    assert original["login"]["username"] == "u"


def test_merge_patch_replaces_lists() -> None:
    merged = merge_patch({"fields": [{"name": "a"}, {"name": "b"}]}, {"fields": [{"name": "c"}]})

    assert merged == {"fields": [{"name": "c"}]}


def test_merge_patch_writes_none_values() -> None:
    assert merge_patch({"notes": "x", "name": "n"}, {"notes": None}) == {"notes": None, "name": "n"}


def test_merge_patch_replaces_scalar_with_mapping() -> None:
    assert merge_patch({"login": None}, {"login": {"username": "u"}}) == {
        "login": {"username": "u"}
    }
