"""CLI for one-off object operations against a configured storage backend."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from objstore.exceptions import StorageServiceError
from objstore.factory import StorageServiceFactory
from objstore.logging_config import setup_logging
from objstore.service import StorageService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="objstore", description="Put, get and delete objects through S3 or local storage")
    parser.add_argument("--config", type=Path, help="YAML config file (default: $OBJSTORE_CONFIG or config/default.yaml)")
    parser.add_argument("--section", default="storage", help="Dotted path of the storage section in the config file")
    parser.add_argument("--base-path", type=Path, help="Directory that localstorage paths resolve against")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "WARNING"), help="Log level")

    commands = parser.add_subparsers(dest="command", required=True)

    put = commands.add_parser("put", help="Upload a file")
    put.add_argument("key")
    put.add_argument("file", type=Path)
    put.add_argument("--content-type", help="ContentType stored with the object")
    put.add_argument("--multipart", action="store_true", help="Use the streaming multipart upload")

    get = commands.add_parser("get", help="Download an object")
    get.add_argument("key")
    get.add_argument("-o", "--output", type=Path, help="Write the body here instead of stdout")

    delete = commands.add_parser("delete", help="Delete an object")
    delete.add_argument("key")

    url = commands.add_parser("url", help="Print the public URL of a key")
    url.add_argument("key")

    for sub in (put, get, delete, url):
        sub.add_argument("--bucket", help="Bucket to use when the config binds none")
    return parser


async def _run(service: StorageService, args: argparse.Namespace) -> None:
    params: dict[str, Any] = {"Key": args.key}
    if args.bucket:
        params["Bucket"] = args.bucket

    if args.command == "put":
        if args.content_type:
            params["ContentType"] = args.content_type
        with args.file.open("rb") as fp:
            params["Body"] = fp
            if args.multipart:
                await service.upload(params)
            else:
                await service.put_object(params)
        print(service.get_key_with_key_prefix(args.key))
    elif args.command == "get":
        result = await service.get_object(params)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_bytes(result["Body"])
        else:
            sys.stdout.buffer.write(result["Body"])
            sys.stdout.buffer.flush()
    elif args.command == "delete":
        await service.delete_object(params)
        print(service.get_key_with_key_prefix(args.key))


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level.upper())

    try:
        service = StorageServiceFactory.create_from_config_file(
            args.section,
            args.config,
            base_path=args.base_path,
        )
        if args.command == "url":
            print(service.get_url(args.key, args.bucket))
        else:
            asyncio.run(_run(service, args))
    except (StorageServiceError, OSError, ClientError, BotoCoreError) as exc:
        logger.debug(f"{args.command} failed: {exc!r}")
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
