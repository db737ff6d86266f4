"""
LinguaLink — Command Line Front-End
====================================
Drives the translation client from a terminal.

Usage::

    lingualink text "Xin chào" --target en
    lingualink image menu.jpg --target Vietnamese
    lingualink audio memo.mp3 --source vi --target English
    lingualink file report.pdf --target vi --premium
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from lingualink.core.config import Settings, settings as default_settings
from lingualink.core.errors import TranslationClientError
from lingualink.data.languages import find_language
from lingualink.schemas.translation import FileDescriptor
from lingualink.services.translation_client import TranslationClient
from lingualink.services.translation_service import audio_descriptor, image_descriptor


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if settings.DEBUG_MODE else "WARNING")
    logger.add(settings.LOG_FILE, rotation="500 MB")


def resolve_language(value: str) -> str:
    """Accept a code (``vi``) or a name (``Vietnamese``); send the API name."""
    lang = find_language(value)
    return lang.name if lang is not None else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lingualink",
        description="LinguaLink — translate text, images, audio and documents",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    text = sub.add_parser("text", help="Translate a piece of text")
    text.add_argument("text", help="Text to translate")
    text.add_argument("--target", default="English", help="Target language code or name")

    image = sub.add_parser("image", help="OCR and translate an image")
    image.add_argument("path", type=Path)
    image.add_argument("--target", default="Vietnamese")

    audio = sub.add_parser("audio", help="Transcribe and translate a recording")
    audio.add_argument("path", type=Path)
    audio.add_argument("--source", default="auto", help="Source language code, or 'auto'")
    audio.add_argument("--target", default="Vietnamese")

    file = sub.add_parser("file", help="Translate a document and download the result")
    file.add_argument("path", type=Path)
    file.add_argument("--target", default="English")
    file.add_argument("--premium", action="store_true", help="Use the premium processing tier")
    file.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the job")

    return parser


async def run(args: argparse.Namespace, client: TranslationClient) -> None:
    target = resolve_language(args.target)

    if args.command == "text":
        result = await client.translate_text(args.text, target)
        print(result.translated_text)

    elif args.command == "image":
        result = await client.translate_image(image_descriptor(args.path), target)
        print(result.translated_text)
        for segment in result.segments:
            print(f"  {segment.original} -> {segment.translated}")

    elif args.command == "audio":
        result = await client.translate_audio(audio_descriptor(args.path), args.source, target)
        print(f"Original:   {result.original_text}")
        print(f"Translated: {result.translated_text}")
        if result.audio_details.detected_language:
            print(f"Detected:   {result.audio_details.detected_language}")

    elif args.command == "file":

        def _progress(fraction: float) -> None:
            print(f"\rDownloading... {fraction:5.1%}", end="", flush=True)

        downloaded = await client.translate_file(
            FileDescriptor.from_path(args.path),
            target,
            is_premium=args.premium,
            on_progress=_progress,
            timeout=args.timeout,
        )
        print(f"\nSaved to {downloaded.path}")


async def _main(args: argparse.Namespace, settings: Settings) -> int:
    async with TranslationClient.from_settings(settings) as client:
        try:
            await run(args, client)
        except TranslationClientError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
    return 0


def main(argv: Optional[list[str]] = None, settings: Optional[Settings] = None) -> int:
    settings = settings or default_settings
    args = build_parser().parse_args(argv)
    configure_logging(settings)
    return asyncio.run(_main(args, settings))


if __name__ == "__main__":
    sys.exit(main())
