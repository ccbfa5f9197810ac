"""Render one certificate by Bib Number without the Streamlit UI.

Usage:
  python scripts/generate_certificate.py 001 --output certificates/

Runs the same search flow as the web page (lookup, background, name
layout, export) and writes the PNG into the output directory. Exit code is
0 on success and 1 otherwise.
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from core.certificate import CertificateRenderer
from core.controller import CertificateController, NotificationKind
from core.participants import ParticipantDirectory
from core.settings_manager import load_settings
from core.surface import PillowSurface, directory_sink


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a finisher certificate for one Bib Number.")
    parser.add_argument("bib", help="Bib Number to look up (case-insensitive).")
    parser.add_argument("--output", default="certificates", help="Directory to write the PNG into.")
    parser.add_argument("--participants", help="Participants JSON path or URL (overrides settings).")
    parser.add_argument("--settings", help="Settings JSON file (default: data/certificate_settings.json).")
    parser.add_argument("--no-delay", action="store_true", help="Skip the pacing delay.")
    return parser.parse_args(argv)


def build_controller(args: argparse.Namespace) -> CertificateController:
    settings = load_settings(args.settings)
    directory = ParticipantDirectory(request_timeout=settings.request_timeout)
    directory.load(args.participants or settings.participants_source)

    surface = PillowSurface(
        settings.canvas_width,
        settings.canvas_height,
        directory_sink(args.output),
        font_path=settings.font_path,
    )
    return CertificateController(
        directory,
        CertificateRenderer(surface, settings),
        pacing_delay=0.0 if args.no_delay else settings.pacing_delay,
    )


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.environ.get("CERT_LOG_LEVEL", "INFO").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)
    controller = build_controller(args)

    notification = asyncio.run(controller.search(args.bib))
    print(f"[{notification.kind.value}] {notification.message}")
    if notification.kind != NotificationKind.SUCCESS:
        return 1
    print(os.path.join(args.output, controller.last_export.filename))
    return 0


if __name__ == "__main__":
    sys.exit(main())
