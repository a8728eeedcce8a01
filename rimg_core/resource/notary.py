"""Notary config directory builder for content trust."""

from __future__ import annotations

import json
import logging
import os
import re
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Union
from urllib.parse import unquote

from .errors import ContentTrustError, NotaryConfigError

if TYPE_CHECKING:
    from .types import ContentTrust

logger = logging.getLogger(__name__)

NOTARY_DIR_NAME = ".notary"
NOTARY_CONFIG_FILE = "gcr-config.json"
TLS_CERT_FILE = "client.cert"
TLS_KEY_FILE = "client.key"

DIR_MODE = 0o777
PUBLIC_FILE_MODE = 0o644
PRIVATE_FILE_MODE = 0o600


@dataclass(frozen=True)
class MakeDir:
    kind: ClassVar[str] = "mkdir"

    path: Path
    mode: int = DIR_MODE
    parents: bool = False
    exist_ok: bool = False


@dataclass(frozen=True)
class WriteFile:
    kind: ClassVar[str] = "write"

    path: Path
    content: bytes = field(repr=False)
    mode: int = PUBLIC_FILE_MODE


Directive = Union[MakeDir, WriteFile]


@dataclass(frozen=True)
class NotaryConfigPlan:
    config_dir: Path
    directives: tuple[Directive, ...]


_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*:")
_HEX = frozenset(string.hexdigits)
_HOST_CHARS = frozenset(string.ascii_letters + string.digits + "-._~!$&'()*+,;=:[]<>\"%")
_USERINFO_CHARS = frozenset(string.ascii_letters + string.digits + "-._:~!$&'()*+,;=%@")


def _invalid(server: str, reason: str) -> ContentTrustError:
    return ContentTrustError(f"invalid server URL {server!r}: {reason}")


def _check_escapes(server: str, text: str, *, host: bool = False) -> None:
    index = text.find("%")
    while index >= 0:
        code = text[index + 1 : index + 3]
        if len(code) < 2 or not set(code) <= _HEX:
            raise _invalid(server, f"invalid escape {text[index : index + 3]!r}")
        # hosts may only escape non-ASCII bytes, or '%' itself
        if host and int(code[0], 16) < 8 and code != "25":
            raise _invalid(server, f"invalid escape {text[index : index + 3]!r} in host")
        index = text.find("%", index + 3)


def _check_port(server: str, port: str) -> None:
    # "host:" with an empty port is accepted
    if port and (port[0] != ":" or any(ch not in string.digits for ch in port[1:])):
        raise _invalid(server, f"invalid port {port!r} after host")


def _parse_host(server: str, host: str) -> str:
    if host.startswith("["):
        end = host.find("]")
        if end < 0:
            raise _invalid(server, "missing ']' in host")
        _check_port(server, host[end + 1 :])
    else:
        colon = host.rfind(":")
        if colon >= 0:
            _check_port(server, host[colon:])
    for ch in host:
        if ch.isascii() and ch not in _HOST_CHARS:
            raise _invalid(server, f"invalid character {ch!r} in host name")
    _check_escapes(server, host, host=True)
    return unquote(host)


def notary_host(server: str) -> str:
    """Return the host (with port) of the notary server URL, or ``""``.

    Rejects what notary clients reject: control characters, bad percent
    escapes, bad host characters, bad ports and a colon in the first segment
    of a scheme-less reference. The query string is not validated.
    """
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in server):
        raise _invalid(server, "contains control characters")

    rest, _, fragment = server.partition("#")
    _check_escapes(server, fragment)
    rest = rest.partition("?")[0]

    scheme = _SCHEME_RE.match(rest)
    if scheme:
        rest = rest[scheme.end() :]
        if not rest.startswith("/"):
            # opaque reference such as "mailto:x"; nothing to unescape
            return ""
    elif ":" in rest.partition("/")[0]:
        raise _invalid(server, "first path segment cannot contain a colon")

    host = ""
    if rest.startswith("//") and (scheme or not rest.startswith("///")):
        authority, slash, path = rest[2:].partition("/")
        rest = slash + path
        userinfo, at, hostport = authority.rpartition("@")
        if at:
            if any(ch not in _USERINFO_CHARS for ch in userinfo):
                raise _invalid(server, "invalid userinfo")
            _check_escapes(server, userinfo)
        host = _parse_host(server, hostport)

    _check_escapes(server, rest)
    return host


def build_config_document(trust: ContentTrust) -> dict[str, str]:
    # the repository key is read by the client from trust/private, never from here
    return {
        "server_url": trust.server,
        "root_passphrase": "",
        "repository_passphrase": trust.repository_passphrase,
    }


def plan_config_dir(trust: ContentTrust, destination_root: Path | str) -> NotaryConfigPlan:
    config_dir = Path(destination_root).absolute() / NOTARY_DIR_NAME
    config_data = json.dumps(
        build_config_document(trust),
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    ).encode("utf-8")
    private_dir = config_dir / "trust" / "private"

    directives: list[Directive] = [
        MakeDir(config_dir),
        WriteFile(config_dir / NOTARY_CONFIG_FILE, config_data, PUBLIC_FILE_MODE),
        MakeDir(private_dir, parents=True, exist_ok=True),
        WriteFile(
            private_dir / f"{trust.repository_key_id}.key",
            trust.repository_key.encode("utf-8"),
            PRIVATE_FILE_MODE,
        ),
    ]

    host = notary_host(trust.server)
    if host:
        cert_dir = config_dir / "tls" / host
        directives.extend(
            [
                MakeDir(cert_dir, parents=True, exist_ok=True),
                WriteFile(cert_dir / TLS_CERT_FILE, trust.tls_cert.encode("utf-8"), PUBLIC_FILE_MODE),
                WriteFile(cert_dir / TLS_KEY_FILE, trust.tls_key.encode("utf-8"), PUBLIC_FILE_MODE),
            ]
        )
    else:
        logger.debug("notary server %r has no host; skipping tls client files", trust.server)

    return NotaryConfigPlan(config_dir=config_dir, directives=tuple(directives))


def apply_plan(plan: NotaryConfigPlan) -> Path:
    """Apply directives in order, stopping at the first failure.

    Files written before the failure are left on disk.
    """
    for directive in plan.directives:
        logger.debug("notary directive=%s path=%s mode=%o", directive.kind, directive.path, directive.mode)
        try:
            if isinstance(directive, MakeDir):
                directive.path.mkdir(
                    mode=directive.mode,
                    parents=directive.parents,
                    exist_ok=directive.exist_ok,
                )
            else:
                _write_file(directive)
        except OSError as exc:
            reason = exc.strerror or str(exc)
            raise NotaryConfigError(
                f"notary config {directive.kind} failed for {str(directive.path)!r}: {reason}",
                directive.path,
            ) from exc
    return plan.config_dir


def _write_file(directive: WriteFile) -> None:
    fd = os.open(directive.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, directive.mode)
    with os.fdopen(fd, "wb") as handle:
        handle.write(directive.content)
    os.chmod(directive.path, directive.mode)


def prepare_config_dir(trust: ContentTrust, destination_root: Path | str) -> Path:
    plan = plan_config_dir(trust, destination_root)
    return apply_plan(plan)
