"""
Vault document model.

The decrypted vault is a single JSON document::

    {
      "keys": {provider: {key_name: KeyRecord}},
      "metadata": {"created": ISO8601, "modified": ISO8601 | null}
    }

Field names on the wire are camelCase and the secret is stored under
``key`` so files written by earlier releases keep loading.
"""
from typing import Any, Optional, Union
from datetime import datetime, timezone

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# formats JavaScript's Date() also understands, tried after ISO-8601
_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%m/%d/%Y", "%Y/%m/%d")


def _parse_timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized timestamp {value!r}")


def _as_utc(value: Any) -> Any:
    """Accept ISO strings (with ``Z``, date-only) and naive datetimes as UTC."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        value = _parse_timestamp(value)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class _VaultModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class KeyRecord(_VaultModel):
    """One stored API key plus its lifecycle metadata.

    Only ``key``, the timestamps and the counters are strict. The
    descriptive fields accept whatever older clients stored: scalars are
    coerced, and an ``expirationDate`` that cannot be parsed is kept as
    the raw string and makes the key count as expired.
    """

    secret: str = Field(alias="key", repr=False)
    created: datetime = Field(default_factory=utcnow)
    last_used: Optional[datetime] = None
    usage_count: int = Field(default=0, ge=0)
    expiration_date: Optional[Union[datetime, str]] = None
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True
    environment: str = "development"
    metadata: Any = Field(default_factory=dict)

    @field_validator("created", "last_used", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return _as_utc(v)

    @field_validator("expiration_date", mode="before")
    @classmethod
    def parse_expiration(cls, v: Any) -> Any:
        try:
            return _as_utc(v)
        except ValueError:
            return v.strip()

    @field_validator("description", "environment", mode="before")
    @classmethod
    def as_text(cls, v: Any, info) -> Any:
        if v is None or v == "":
            return "development" if info.field_name == "environment" else ""
        return v if isinstance(v, str) else str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def as_tag_list(cls, v: Any) -> list:
        if v is None:
            return []
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        if isinstance(v, (list, tuple, set)):
            return [tag if isinstance(tag, str) else str(tag) for tag in v]
        return [str(v)]

    @field_validator("metadata", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def expiration_unreadable(self) -> bool:
        return isinstance(self.expiration_date, str)

    @classmethod
    def from_metadata(cls, secret: str, metadata: Optional[dict] = None) -> "KeyRecord":
        """Build a fresh record, lifting known fields out of ``metadata``."""
        metadata = dict(metadata or {})
        return cls(
            secret=secret,
            expiration_date=metadata.get("expirationDate"),
            description=metadata.get("description") or "",
            tags=metadata.get("tags") or [],
            is_active=metadata.get("isActive") is not False,
            environment=metadata.get("environment") or "development",
            metadata=metadata,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiration_date is None:
            return False
        if self.expiration_unreadable:
            return True
        return (now or utcnow()) > self.expiration_date

    def touch(self, now: Optional[datetime] = None) -> None:
        """Record one successful retrieval."""
        self.last_used = now or utcnow()
        self.usage_count += 1

    def summary(self, name: str) -> dict:
        """Public projection of this record, never including the secret."""
        return {
            "name": name,
            "created": self.created,
            "lastUsed": self.last_used,
            "metadata": self.metadata,
        }


class VaultMetadata(_VaultModel):
    created: datetime = Field(default_factory=utcnow)
    modified: Optional[datetime] = None

    @field_validator("created", "modified", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return _as_utc(v)


class VaultDocument(_VaultModel):
    """Decrypted vault contents: provider -> key name -> KeyRecord."""

    keys: dict[str, dict[str, KeyRecord]] = Field(default_factory=dict)
    metadata: VaultMetadata = Field(default_factory=VaultMetadata)

    def get_record(self, provider: str, key_name: str) -> Optional[KeyRecord]:
        return self.keys.get(provider, {}).get(key_name)

    def put_record(self, provider: str, key_name: str, record: KeyRecord) -> None:
        self.keys.setdefault(provider, {})[key_name] = record

    def remove_record(self, provider: str, key_name: str) -> bool:
        """Remove a record, pruning the provider once it has no keys left."""
        records = self.keys.get(provider)
        if not records or key_name not in records:
            return False
        del records[key_name]
        if not records:
            del self.keys[provider]
        return True

    def mark_modified(self) -> None:
        self.metadata.modified = utcnow()

    def count(self) -> int:
        return sum(len(records) for records in self.keys.values())

    def to_json(self) -> bytes:
        """Serialize for encryption."""
        return orjson.dumps(
            self.model_dump(mode="json", by_alias=True),
            option=orjson.OPT_INDENT_2,
        )

    @classmethod
    def from_json(cls, raw: bytes) -> "VaultDocument":
        return cls.model_validate(orjson.loads(raw))
