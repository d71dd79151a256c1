"""Command-line entry point: render previews and PDFs from JSON files."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from resume_press.api import ResumeAPI
from resume_press.config import EngineConfig
from resume_press.exceptions import ResumePressError

logger = logging.getLogger(__name__)


def is_debug() -> bool:
    """Check if DEBUG is enabled via environment / .env."""
    return os.environ.get("DEBUG", "").lower() in ("1", "true")


def _read_json(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SystemExit(f"Could not read {path}: {exc}")


def _fail(result: dict) -> int:
    print(f"error ({result.get('error_type')}): {result.get('error')}", file=sys.stderr)
    return 1


def _write_pdf(result: dict, output: Optional[str]) -> int:
    if not result["success"]:
        return _fail(result)
    out = Path(output or result["filename"]).with_suffix(".pdf")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result["pdf"])
    print(f"Wrote {out} ({result['page_count'] or '?'} pages)")
    return 0


def cmd_render(api: ResumeAPI, args: argparse.Namespace) -> int:
    """Render template data to HTML. The JSON file is a render request
    (``templateId``/``templateData``/``customization``)."""
    result = api.render_template(_read_json(args.request))
    if not result["success"]:
        return _fail(result)
    if args.output:
        Path(args.output).write_text(result["html"], encoding="utf-8")
        print(f"Wrote {args.output} ({result['byte_length']} bytes)")
    else:
        sys.stdout.write(result["html"])
    return 0


def cmd_convert(api: ResumeAPI, args: argparse.Namespace) -> int:
    result = asyncio.run(api.generate_pdf(_read_json(args.request)))
    return _write_pdf(result, args.output)


def cmd_selftest(api: ResumeAPI, args: argparse.Namespace) -> int:
    result = asyncio.run(api.self_test())
    return _write_pdf(result, args.output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="resume-press", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("render", help="Render a template request to HTML")
    p.add_argument("request", help="JSON file with templateId/templateData/customization")
    p.add_argument("-o", "--output", help="Write HTML here instead of stdout")
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("convert", help="Convert a request (htmlContent or templateId) to PDF")
    p.add_argument("request", help="JSON conversion request")
    p.add_argument("-o", "--output", help="PDF path (default: suggested filename)")
    p.set_defaults(func=cmd_convert)

    p = sub.add_parser("selftest", help="Generate a minimal PDF to check the engine")
    p.add_argument("-o", "--output", default="test.pdf")
    p.set_defaults(func=cmd_selftest)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the resume-press command line."""
    from dotenv import load_dotenv

    load_dotenv()

    logging.basicConfig(
        level=logging.DEBUG if is_debug() else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    args = build_parser().parse_args(argv)
    try:
        config = EngineConfig.from_env()
    except (ResumePressError, ValueError) as exc:
        print(f"error (config): {exc}", file=sys.stderr)
        return 1
    api = ResumeAPI(config)
    return args.func(api, args)


if __name__ == "__main__":
    sys.exit(main())
