"""Resource datatypes: image source, content trust and step parameters."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from .errors import AdditionalTagsError, PayloadError, TagDecodeError
from .notary import prepare_config_dir

DEFAULT_TAG = "latest"
DEFAULT_FORMAT = "rootfs"

# Unicode White_Space; the ASCII information separators \x1c-\x1f do not split tags
_TAG_SEPARATOR_RE = re.compile("[\t\n\v\f\r \x85\xa0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000]+")


class JsonNumber(str):
    """Verbatim text of a JSON numeric literal."""

    __slots__ = ()


class Tag(str):
    """Tag of an image in the registry."""

    __slots__ = ()


def _reject_constant(name: str) -> Any:
    raise PayloadError(f"unsupported JSON constant: {name}")


def load_document(text: str | bytes) -> Any:
    """Decode JSON keeping numeric literals as their exact text."""
    try:
        return json.loads(
            text,
            parse_int=JsonNumber,
            parse_float=JsonNumber,
            parse_constant=_reject_constant,
        )
    except json.JSONDecodeError as exc:
        raise PayloadError(f"invalid JSON document: {exc}") from exc


def decode_tag(value: Any) -> Tag:
    # bool is an int subclass and must not be read as a number
    if isinstance(value, bool) or value is None:
        raise TagDecodeError(f"tag must be a string or a number, got {json.dumps(value)}")
    if isinstance(value, JsonNumber):
        return Tag(value)
    if isinstance(value, (int, float)):
        return Tag(str(value))
    if isinstance(value, str):
        return Tag(value)
    raise TagDecodeError(f"tag must be a string or a number, got {type(value).__name__}")


def decode_tag_json(raw: str | bytes) -> Tag:
    try:
        value = load_document(raw)
    except PayloadError as exc:
        raise TagDecodeError(f"invalid tag: {exc}") from exc
    return decode_tag(value)


@dataclass(frozen=True)
class Defaulted:
    """Optional string value falling back to a default when empty."""

    raw: str
    default: str

    def resolve(self) -> str:
        if self.raw:
            return self.raw
        return self.default


def _ensure_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    raise PayloadError(f"expected JSON object for {what}")


def _string(payload: Mapping[str, Any], key: str, what: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    # JsonNumber is a str subclass; numbers are not accepted for plain strings
    if isinstance(value, JsonNumber) or not isinstance(value, str):
        raise PayloadError(f"{what}.{key} must be a string")
    return str(value)


def _bool(payload: Mapping[str, Any], key: str, what: str) -> bool:
    value = payload.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise PayloadError(f"{what}.{key} must be a boolean")
    return value


@dataclass(frozen=True)
class MetadataField:
    name: str
    value: str

    def to_payload(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class Version:
    digest: str

    @classmethod
    def from_payload(cls, payload: Any) -> Version:
        data = _ensure_mapping(payload, "version")
        return cls(digest=_string(data, "digest", "version"))

    def to_payload(self) -> dict[str, str]:
        return {"digest": self.digest}


@dataclass(frozen=True)
class ContentTrust:
    """Signing credentials for one registry's notary server."""

    server: str
    repository_key_id: str
    repository_key: str = field(repr=False)
    repository_passphrase: str = field(repr=False)
    tls_key: str = field(default="", repr=False)
    tls_cert: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> ContentTrust:
        data = _ensure_mapping(payload, "content_trust")
        return cls(
            server=_string(data, "server", "content_trust"),
            repository_key_id=_string(data, "repository_key_id", "content_trust"),
            repository_key=_string(data, "repository_key", "content_trust"),
            repository_passphrase=_string(data, "repository_passphrase", "content_trust"),
            tls_key=_string(data, "tls_key", "content_trust"),
            tls_cert=_string(data, "tls_cert", "content_trust"),
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "server": self.server,
            "repository_key_id": self.repository_key_id,
            "repository_key": self.repository_key,
            "repository_passphrase": self.repository_passphrase,
            "tls_key": self.tls_key,
            "tls_cert": self.tls_cert,
        }

    def prepare_config_dir(self, destination_root: Path | str) -> Path:
        """Create ``<destination_root>/.notary`` for the signing client.

        Layout::

            .notary/
            ├── gcr-config.json
            ├── trust/private/<repository_key_id>.key
            └── tls/<notary-host>/{client.cert,client.key}

        The ``tls`` branch is only written when the server URL has a host.
        Fails if ``.notary`` already exists; nothing is cleaned up on error.
        """
        return prepare_config_dir(self, destination_root)


@dataclass(frozen=True)
class Source:
    repository: str
    raw_tag: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    content_trust: ContentTrust | None = None
    debug: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> Source:
        data = _ensure_mapping(payload, "source")
        raw_tag = ""
        if "tag" in data:
            raw_tag = str(decode_tag(data["tag"]))
        content_trust = None
        if data.get("content_trust") is not None:
            content_trust = ContentTrust.from_payload(data["content_trust"])
        return cls(
            repository=_string(data, "repository", "source"),
            raw_tag=raw_tag,
            username=_string(data, "username", "source"),
            password=_string(data, "password", "source"),
            content_trust=content_trust,
            debug=_bool(data, "debug", "source"),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"repository": self.repository}
        if self.raw_tag:
            payload["tag"] = self.raw_tag
        if self.username:
            payload["username"] = self.username
        if self.password:
            payload["password"] = self.password
        if self.content_trust is not None:
            payload["content_trust"] = self.content_trust.to_payload()
        if self.debug:
            payload["debug"] = True
        return payload

    def tag(self) -> str:
        return Defaulted(self.raw_tag, DEFAULT_TAG).resolve()

    def name(self) -> str:
        return f"{self.repository}:{self.tag()}"

    def metadata(self) -> list[MetadataField]:
        return [
            MetadataField(name="repository", value=self.repository),
            MetadataField(name="tag", value=self.tag()),
        ]

    def metadata_with_additional_tags(self, tags: Sequence[str]) -> list[MetadataField]:
        """Report the repository and every tag pushed; the primary tag is last."""
        return [
            MetadataField(name="repository", value=self.repository),
            MetadataField(name="tags", value=" ".join([*tags, self.tag()])),
        ]


@dataclass(frozen=True)
class GetParams:
    raw_format: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> GetParams:
        if payload is None:
            return cls()
        data = _ensure_mapping(payload, "params")
        return cls(raw_format=_string(data, "format", "params"))

    def format(self) -> str:
        return Defaulted(self.raw_format, DEFAULT_FORMAT).resolve()


@dataclass(frozen=True)
class PutParams:
    image: str = ""
    additional_tags: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> PutParams:
        if payload is None:
            return cls()
        data = _ensure_mapping(payload, "params")
        return cls(
            image=_string(data, "image", "params"),
            additional_tags=_string(data, "additional_tags", "params"),
        )

    def parse_tags(self, source_dir: Path | str) -> list[str]:
        if not self.additional_tags:
            return []

        # always relative to source_dir, even when the param starts with a separator
        path = Path(source_dir) / self.additional_tags.lstrip(os.sep)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise AdditionalTagsError(f"failed to read file at {str(path)!r}: {exc}", path) from exc

        # undecodable bytes stay inside their tag
        content = data.decode("utf-8", errors="surrogateescape")
        return [tag for tag in _TAG_SEPARATOR_RE.split(content) if tag]
