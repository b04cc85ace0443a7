#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
from pathlib import Path

SENTINEL = "---JSON RESULT---"


def build_bundle(plan_name: str) -> dict:
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [
            {
                "resource": {
                    "resourceType": "InsurancePlan",
                    "id": "plan-1",
                    "status": "active",
                    "name": plan_name,
                }
            },
            {
                "resource": {
                    "resourceType": "Organization",
                    "id": "insurer-1",
                    "status": "",
                    "name": "Sample Insurer Ltd",
                }
            },
        ],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Write a sample converter stream (progress lines + JSON result)")
    parser.add_argument("--output", required=True, help="output file path (.txt)")
    parser.add_argument("--chunks", type=int, default=3, help="number of progress steps")
    parser.add_argument("--plan", default="Gold Health Plan", help="insurance plan name")
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    lines = [f"Processing {args.chunks} chunks"]
    lines.extend(f"chunk {index}/{args.chunks}" for index in range(1, args.chunks + 1))
    lines.append(SENTINEL)
    lines.append(json.dumps(build_bundle(args.plan), indent=2, ensure_ascii=False))

    output.write_text("\n".join(lines) + "\n", encoding="utf-8")
    print(f"sample stream written: {output}")


if __name__ == "__main__":
    main()
