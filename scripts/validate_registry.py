#!/usr/bin/env python3
"""
Validate a batch index file before publishing it.

Usage:
    python scripts/validate_registry.py path/to/batch-index.json

Exits non-zero and prints the reason when the index would fail to load at startup.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.batchverify.modules.batch_verification.errors import RegistryLoadError  # noqa: E402
from app.batchverify.modules.batch_verification.issuer import is_external, is_folder_reference  # noqa: E402
from app.batchverify.modules.batch_verification.registry import parse_batch_index_bytes  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("path", type=Path)
    parser.add_argument(
        "--reports-root",
        type=Path,
        default=None,
        help="Local directory mirroring the bucket; checks that every report object exists.",
    )
    args = parser.parse_args(argv)

    try:
        registry = parse_batch_index_bytes(args.path.read_bytes())
    except OSError as e:
        print(f"ERROR: cannot read {args.path}: {e}", flush=True)
        return 2
    except RegistryLoadError as e:
        print(f"INVALID: {e}", flush=True)
        return 1

    missing = 0
    for code in registry.codes():
        rec = registry.lookup(code)
        kind = "folder" if is_folder_reference(rec.report_locator) else ("external" if is_external(rec.report_locator) else "object")
        line = f"{code:<16} {kind:<8} {rec.product_name}"
        if kind == "object" and args.reports_root is not None and not (args.reports_root / rec.report_locator).is_file():
            line += "  [MISSING]"
            missing += 1
        print(line, flush=True)

    print(f"OK: {len(registry)} batch codes" + (f", {missing} missing report objects" if missing else ""), flush=True)
    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())
