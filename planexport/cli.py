"""Command-line entry point: floor-plan JSON file in, GLB file out."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from planexport.config import ExportConfig
from planexport.errors import ExportError
from planexport.pipeline import export_plan_to_glb

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_EXPORT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="planexport",
        description="Export a floor-plan scene JSON file to a binary glTF (GLB) model",
    )
    parser.add_argument("input", type=Path, help="Floor-plan scene JSON file")
    parser.add_argument("output", type=Path, help="Destination .glb file")
    parser.add_argument(
        "--textures",
        type=Path,
        default=None,
        help="JSON texture catalog keyed by element type, then texture name",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _load_json(path: Path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        document = _load_json(args.input)
        textures = _load_json(args.textures) if args.textures else None
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: cannot read input: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    # A request envelope {scene, texturesByType} is accepted as well as a bare scene
    if isinstance(document, dict) and isinstance(document.get("scene"), dict):
        if textures is None:
            textures = document.get("texturesByType")
        document = document["scene"]

    try:
        glb = asyncio.run(export_plan_to_glb(document, textures, config=ExportConfig.from_env()))
    except ExportError as e:
        print(f"Error: export failed: {e}", file=sys.stderr)
        return EXIT_EXPORT_ERROR

    output = args.output.resolve()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(glb)
    print(f"Wrote {output}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
