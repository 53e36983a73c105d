#!/usr/bin/env python3
"""
Publish a batch index (and optionally its report PDFs) to the configured storage backend.

Usage:
    python scripts/upload_registry.py path/to/batch-index.json [--reports-dir DIR]

Uses the same STORAGE_BACKEND / S3_* / REGISTRY_INDEX_KEY env vars as the app.
The index is validated first; nothing is uploaded if it would not load.
Running instances pick it up on restart or POST /admin/registry/reload.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv  # noqa: E402

from app.batchverify.config import load_config  # noqa: E402
from app.batchverify.modules.batch_verification.errors import RegistryLoadError  # noqa: E402
from app.batchverify.modules.batch_verification.issuer import is_external  # noqa: E402
from app.batchverify.modules.batch_verification.registry import parse_batch_index_bytes  # noqa: E402
from app.batchverify.storage import storage_from_config  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Publish a batch index to storage.")
    parser.add_argument("path", type=Path)
    parser.add_argument("--reports-dir", type=Path, default=None, help="Upload report objects found here, keyed by reportPath.")
    args = parser.parse_args(argv)

    load_dotenv()
    config = load_config()
    raw = args.path.read_bytes()
    try:
        registry = parse_batch_index_bytes(raw)
    except RegistryLoadError as e:
        print(f"INVALID: {e}", flush=True)
        return 1

    storage = storage_from_config(config)
    if args.reports_dir is not None:
        for code in registry.codes():
            locator = registry.lookup(code).report_locator
            if is_external(locator):
                continue
            src = args.reports_dir / locator
            if not src.is_file():
                print(f"SKIP {code}: {src} not found", flush=True)
                continue
            storage.put_bytes(locator, src.read_bytes(), content_type="application/pdf")
            print(f"uploaded {locator}", flush=True)

    storage.put_bytes(config["REGISTRY_INDEX_KEY"], raw, content_type="application/json")
    print(f"Published {config['REGISTRY_INDEX_KEY']} ({len(registry)} batch codes)", flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
