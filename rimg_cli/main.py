"""Argument parsing and dispatch for the rimg CLI."""

from __future__ import annotations

import json
import logging
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TextIO

import yaml

from rimg_core.config import load_settings
from rimg_core.log import configure_logging
from rimg_core.resource import (
    GetParams,
    PayloadError,
    PutParams,
    ResourceError,
    Source,
    load_document,
)
from rimg_core.resource.security import redact_payload_for_log

logger = logging.getLogger(__name__)

Handler = Callable[[Namespace, Source, Mapping[str, Any]], int]


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="rimg", description="Registry image resource helpers")
    parser.add_argument("--input", help="Read the JSON request from this file instead of stdin")
    parser.add_argument("--config", help="Path to an rimg.yml settings file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("name", help="Print <repository>:<tag> for the source")
    commands.add_parser("format", help="Print the get step output format")
    metadata = commands.add_parser("metadata", help="Print metadata fields as JSON")
    metadata.add_argument(
        "--additional-tags-dir",
        help="Directory params.additional_tags is resolved against",
    )
    notary = commands.add_parser("notary-config", help="Write the notary config directory")
    notary.add_argument("destination", help="Existing directory that receives .notary")
    return parser


def _read_request(input_path: str | None, stdin: TextIO) -> Mapping[str, Any]:
    try:
        if input_path:
            text = Path(input_path).read_text(encoding="utf-8")
        else:
            text = stdin.read()
    except UnicodeDecodeError as exc:
        raise PayloadError(f"request is not valid UTF-8: {exc}") from exc
    request = load_document(text)
    if not isinstance(request, Mapping):
        raise PayloadError("expected JSON object for request")
    return request


def _cmd_name(args: Namespace, source: Source, request: Mapping[str, Any]) -> int:
    del args, request
    print(source.name())
    return 0


def _cmd_format(args: Namespace, source: Source, request: Mapping[str, Any]) -> int:
    del args, source
    print(GetParams.from_payload(request.get("params")).format())
    return 0


def _cmd_metadata(args: Namespace, source: Source, request: Mapping[str, Any]) -> int:
    params = PutParams.from_payload(request.get("params"))
    tags_dir = getattr(args, "additional_tags_dir", None)
    if params.additional_tags:
        if not tags_dir:
            print("[rimg:metadata] params.additional_tags requires --additional-tags-dir")
            return 2
        fields = source.metadata_with_additional_tags(params.parse_tags(Path(tags_dir)))
    else:
        fields = source.metadata()
    print(json.dumps([item.to_payload() for item in fields]))
    return 0


def _cmd_notary_config(args: Namespace, source: Source, request: Mapping[str, Any]) -> int:
    del request
    if source.content_trust is None:
        print("[rimg:notary-config] source has no content_trust configured")
        return 1
    config_dir = source.content_trust.prepare_config_dir(Path(args.destination))
    logger.info("prepared notary config for %s at %s", source.name(), config_dir)
    print(config_dir)
    return 0


_COMMANDS: dict[str, Handler] = {
    "name": _cmd_name,
    "format": _cmd_format,
    "metadata": _cmd_metadata,
    "notary-config": _cmd_notary_config,
}


def main(argv: Sequence[str] | None = None, *, stdin: TextIO | None = None) -> int:
    args = _build_parser().parse_args(argv)
    command = args.command

    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"[rimg:{command}] invalid settings: {exc}")
        return 1

    try:
        request = _read_request(args.input, stdin or sys.stdin)
        source = Source.from_payload(request.get("source"))
    except (OSError, ResourceError) as exc:
        print(f"[rimg:{command}] invalid request: {exc}")
        return 1

    configure_logging(settings, debug=bool(args.verbose or source.debug))
    logger.debug("command=%s request=%s", command, redact_payload_for_log(request))

    try:
        return _COMMANDS[command](args, source, request)
    except ResourceError as exc:
        print(f"[rimg:{command}] failed: {exc}")
        return 1
