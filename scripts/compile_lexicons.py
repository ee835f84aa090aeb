#!/usr/bin/env python3
"""
Quick validation of the rule-list JSON files used by the text detectors.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import fields
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from reviewtrust.config import PACKAGE_DATA_DIR  # noqa: E402
from reviewtrust.lexicons import load_lexicons  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate ReviewTrust lexicon files.")
    parser.add_argument(
        "--data-dir",
        default=str(PACKAGE_DATA_DIR),
        help="Path to lexicon directory (default: packaged reviewtrust/data)",
    )
    parser.add_argument("--manifest", action="store_true", help="Write lexicon_manifest.json next to the data")
    args = parser.parse_args()

    try:
        lexicons = load_lexicons(args.data_dir)
    except FileNotFoundError as exc:
        print(f"Error: {exc}")
        return 1

    sizes = {f.name: len(getattr(lexicons, f.name)) for f in fields(lexicons)}
    print(f"Loaded lexicons from {args.data_dir}")
    for name, size in sizes.items():
        print(f" - {name}: {size} entries")

    if args.manifest:
        manifest_path = Path(args.data_dir) / "lexicon_manifest.json"
        manifest_path.write_text(json.dumps(sizes, indent=2), encoding="utf-8")
        print(f"\nManifest written to {manifest_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
