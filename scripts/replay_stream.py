#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from bundle_wizard.core.ingestion import IngestionOk, IngestionSession
from bundle_wizard.domain import ProgressSnapshot


def main() -> None:
    parser = argparse.ArgumentParser(description="Feed a saved converter stream through an ingestion session")
    parser.add_argument("path", help="stream file to replay")
    parser.add_argument("--chunk-size", type=int, default=64, help="bytes per fed chunk")
    args = parser.parse_args()

    if args.chunk_size <= 0:
        parser.error("--chunk-size must be positive")

    def report(snapshot: ProgressSnapshot) -> None:
        print(f"[{snapshot.current_step}/{snapshot.total_steps}] {snapshot.messages[-1]}")

    session = IngestionSession(on_progress=report)
    data = Path(args.path).read_bytes()
    for start in range(0, len(data), args.chunk_size):
        session.feed(data[start : start + args.chunk_size])

    result = session.finish()
    if isinstance(result, IngestionOk):
        entries = result.document.get("entry") or []
        print(f"parsed document with {len(entries)} entries")
        print(json.dumps(result.document, indent=2, ensure_ascii=False))
        return

    print(f"ingestion failed: {result.error.reason}", file=sys.stderr)
    if result.error.detail:
        print(result.error.detail, file=sys.stderr)
    sys.exit(1)


if __name__ == "__main__":
    main()
