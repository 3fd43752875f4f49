"""
Vault domain models.

A Cipher is a tagged union: a shared base record plus one payload variant
selected by its CipherType. The same classes hold both the raw form (every
text attribute is a cipher string) and the decrypted form.
"""

from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Any, ClassVar, Self

import structlog

logger = structlog.get_logger(__name__)


def wire_name(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class CipherType(IntEnum):
    """Kind of vault record."""

    LOGIN = 1
    SECURE_NOTE = 2
    CARD = 3
    IDENTITY = 4
    SSH_KEY = 5


class FieldType(IntEnum):
    """Kind of custom field."""

    TEXT = 0
    HIDDEN = 1
    BOOLEAN = 2
    LINKED = 3


@dataclass(frozen=True, kw_only=True)
class Payload:
    """
    Base for type-specific sub-structures.

    Attribute names map to the server's camelCase keys. ENCRYPTED_FIELDS
    lists the attributes stored as cipher strings.
    """

    ENCRYPTED_FIELDS: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        return cls(**{f.name: data.get(wire_name(f.name)) for f in fields(cls)})

    def to_api(self) -> dict[str, Any]:
        return {wire_name(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def attribute_name(cls, key: str) -> str | None:
        """Attribute for a camelCase key, or None if the key is not modelled."""
        for f in fields(cls):
            if wire_name(f.name) == key:
                return f.name
        return None


@dataclass(frozen=True, kw_only=True)
class LoginUri:
    uri: str | None = None
    uri_checksum: str | None = None
    match: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        return cls(
            uri=data.get("uri"),
            uri_checksum=data.get("uriChecksum"),
            match=data.get("match"),
        )

    def to_api(self) -> dict[str, Any]:
        return {"uri": self.uri, "uriChecksum": self.uri_checksum, "match": self.match}


@dataclass(frozen=True, kw_only=True)
class LoginData(Payload):
    ENCRYPTED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"username", "password", "totp", "uri"}
    )

    username: str | None = None
    password: str | None = None
    totp: str | None = None
    uri: str | None = None
    uris: tuple[LoginUri, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        return cls(
            username=data.get("username"),
            password=data.get("password"),
            totp=data.get("totp"),
            uri=data.get("uri"),
            uris=tuple(LoginUri.from_api(u) for u in data.get("uris") or ()),
        )

    def to_api(self) -> dict[str, Any]:
        result = super().to_api()
        result["uris"] = [u.to_api() for u in self.uris]
        return result


@dataclass(frozen=True, kw_only=True)
class CardData(Payload):
    ENCRYPTED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"cardholder_name", "brand", "number", "exp_month", "exp_year", "code"}
    )

    cardholder_name: str | None = None
    brand: str | None = None
    number: str | None = None
    exp_month: str | None = None
    exp_year: str | None = None
    code: str | None = None


@dataclass(frozen=True, kw_only=True)
class IdentityData(Payload):
    ENCRYPTED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "title",
            "first_name",
            "middle_name",
            "last_name",
            "address1",
            "address2",
            "address3",
            "city",
            "state",
            "postal_code",
            "country",
            "company",
            "email",
            "phone",
            "ssn",
            "username",
            "passport_number",
            "license_number",
        }
    )

    title: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    ssn: str | None = None
    username: str | None = None
    passport_number: str | None = None
    license_number: str | None = None


@dataclass(frozen=True, kw_only=True)
class SshKeyData(Payload):
    ENCRYPTED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"private_key", "public_key", "key_fingerprint"}
    )

    private_key: str | None = None
    public_key: str | None = None
    key_fingerprint: str | None = None


@dataclass(frozen=True, kw_only=True)
class CustomField:
    """A custom field. `type` stays a plain int for kinds this client does not know."""

    name: str | None = None
    value: str | None = None
    type: FieldType | int = FieldType.TEXT
    linked_id: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        return cls(
            name=data.get("name"),
            value=data.get("value"),
            type=_field_type(data.get("type") or 0),
            linked_id=data.get("linkedId"),
        )

    def to_api(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": int(self.type),
            "linkedId": self.linked_id,
        }


def _field_type(value: int) -> FieldType | int:
    try:
        return FieldType(value)
    except ValueError:
        return int(value)


PAYLOAD_TYPES: dict[CipherType, tuple[str, type[Payload]]] = {
    CipherType.LOGIN: ("login", LoginData),
    CipherType.CARD: ("card", CardData),
    CipherType.IDENTITY: ("identity", IdentityData),
    CipherType.SSH_KEY: ("sshKey", SshKeyData),
}


@dataclass(frozen=True, kw_only=True)
class Cipher:
    """
    A vault record.

    Attributes:
        id: Server id, None for drafts.
        type: Record kind, selects the payload variant.
        name: Display name.
        notes: Free text notes.
        favorite: Favorite flag.
        organization_id: Owning organization, None for personal records.
        folder_id: Folder id.
        key: Per-record key wrapped with the user or organization key.
        deleted_date: Set when the record is in the trash.
        revision_date: Server revision timestamp.
        payload: Type-specific data (None for secure notes).
        fields: Custom fields.
        raw: Server JSON this record was built from. Not compared.
    """

    ENCRYPTED_FIELDS: ClassVar[frozenset[str]] = frozenset({"name", "notes"})

    id: str | None = None
    type: CipherType
    name: str | None = None
    notes: str | None = None
    favorite: bool = False
    organization_id: str | None = None
    folder_id: str | None = None
    key: str | None = None
    deleted_date: str | None = None
    revision_date: str | None = None
    payload: Payload | None = None
    fields: tuple[CustomField, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.payload is None:
            return
        expected = PAYLOAD_TYPES.get(self.type)
        if expected is None or not isinstance(self.payload, expected[1]):
            payload_name = type(self.payload).__name__
            msg = f"Payload {payload_name} does not match cipher type {self.type.name}"
            raise ValueError(msg)

    @property
    def login(self) -> LoginData | None:
        return self.payload if isinstance(self.payload, LoginData) else None

    @property
    def card(self) -> CardData | None:
        return self.payload if isinstance(self.payload, CardData) else None

    @property
    def identity(self) -> IdentityData | None:
        return self.payload if isinstance(self.payload, IdentityData) else None

    @property
    def ssh_key(self) -> SshKeyData | None:
        return self.payload if isinstance(self.payload, SshKeyData) else None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        cipher_type = CipherType(data["type"])
        payload = None
        if (entry := PAYLOAD_TYPES.get(cipher_type)) is not None:
            payload_key, payload_cls = entry
            if data.get(payload_key) is not None:
                payload = payload_cls.from_api(data[payload_key])

        return cls(
            id=data.get("id"),
            type=cipher_type,
            name=data.get("name"),
            notes=data.get("notes"),
            favorite=bool(data.get("favorite", False)),
            organization_id=data.get("organizationId"),
            folder_id=data.get("folderId"),
            key=data.get("key"),
            deleted_date=data.get("deletedDate"),
            revision_date=data.get("revisionDate"),
            payload=payload,
            fields=tuple(CustomField.from_api(f) for f in data.get("fields") or ()),
            raw=data,
        )

    def to_api(self) -> dict[str, Any]:
        """Request body for this record (server-assigned fields omitted)."""
        result: dict[str, Any] = {
            "type": int(self.type),
            "name": self.name,
            "notes": self.notes,
            "favorite": self.favorite,
            "organizationId": self.organization_id,
            "folderId": self.folder_id,
            "key": self.key,
            "fields": [f.to_api() for f in self.fields],
        }
        if (entry := PAYLOAD_TYPES.get(self.type)) is not None:
            result[entry[0]] = self.payload.to_api() if self.payload is not None else None
        elif self.type == CipherType.SECURE_NOTE:
            result["secureNote"] = self.raw.get("secureNote") or {"type": 0}
        return result


@dataclass(frozen=True, kw_only=True)
class Organization:
    """An organization from the synced profile; `key` is RSA-wrapped."""

    id: str
    name: str | None = None
    key: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        return cls(id=data["id"], name=data.get("name"), key=data.get("key"))


@dataclass(frozen=True, kw_only=True)
class SyncSnapshot:
    """
    A view of the synced vault.

    The raw snapshot holds cipher strings; the decrypted one mirrors it
    record for record, in the same order.
    """

    ciphers: tuple[Cipher, ...] = ()
    organizations: tuple[Organization, ...] = ()
    decrypted: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        profile = data.get("profile") or {}
        return cls(
            ciphers=tuple(_known_ciphers(data.get("ciphers") or ())),
            organizations=tuple(
                Organization.from_api(o) for o in profile.get("organizations") or ()
            ),
        )

    def index_of(self, record_id: str) -> int | None:
        """Position of the record with `record_id`, or None."""
        for index, cipher in enumerate(self.ciphers):
            if cipher.id == record_id:
                return index
        return None


def _known_ciphers(items: list[dict[str, Any]]) -> list[Cipher]:
    # Record kinds added to the server later are left out of the snapshot.
    known = {t.value for t in CipherType}
    ciphers = []
    for item in items:
        if item.get("type") not in known:
            logger.warning(
                "Skipping record of unknown type", record_id=item.get("id"), type=item.get("type")
            )
            continue
        ciphers.append(Cipher.from_api(item))
    return ciphers
