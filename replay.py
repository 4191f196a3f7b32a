"""Replay saved payloads against the sanitizer comparison page.

Input:
    - a text file with one payload per line, or
    - the JSON summary written by run_fuzz.py (its "payload" field is replayed)

Usage:
    python replay.py --url http://localhost:8080/lab --input payloads.txt
    python replay.py --url http://localhost:8080/lab --input outputs/fuzz_result.json --output outputs/replay.jsonl
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from mxfuzz.browser_oracle import PlaywrightOracle
from mxfuzz.env_utils import env_float, first_env, load_env_file
from mxfuzz.errors import ConfigurationError, FuzzError
from mxfuzz.evaluator import print_replay_summary, run_payloads_on_oracle


def load_payloads(path: str) -> list[str]:
    """Read payloads from a fuzz summary JSON or a plain one-per-line file."""

    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read payload file {source}: {exc}") from exc

    if source.suffix.lower() == ".json":
        try:
            summary = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in {source}: {exc}") from exc
        payload = summary.get("payload") if isinstance(summary, dict) else None
        if not payload:
            raise ConfigurationError(f"No payload field in {source}")
        return [str(payload)]

    payloads = [line for line in text.splitlines() if line.strip()]
    if not payloads:
        raise ConfigurationError(f"Payload file {source} is empty")
    return payloads


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay payloads against every sanitizer")
    parser.add_argument("--url", default=None, help="Sanitizer comparison page (fallback: MXFUZZ_TARGET_URL)")
    parser.add_argument("--input", required=True, help="Payload file (.txt one per line, or fuzz summary .json)")
    parser.add_argument("--output", default=None, help="Optional JSONL output path")
    parser.add_argument("--settle-delay", type=float, default=None, help="Seconds to wait after each submission")
    parser.add_argument("--ready-selector", default=None, help="Selector signalling sanitization finished")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--env-file", default=".env", help="Path to env file (default: .env)")
    args = parser.parse_args()

    load_env_file(args.env_file)
    url = args.url or first_env(["MXFUZZ_TARGET_URL", "TARGET_URL"])
    if not url:
        print("[Error] Please provide --url or set MXFUZZ_TARGET_URL")
        return 1
    settle_delay = (
        float(args.settle_delay)
        if args.settle_delay is not None and args.settle_delay >= 0
        else env_float(["MXFUZZ_SETTLE_DELAY_SECONDS", "SETTLE_DELAY_SECONDS"], default=0.6)
    )

    try:
        payloads = load_payloads(args.input)
        print(f"Replaying {len(payloads)} payload(s) against {url}")
        with PlaywrightOracle(url=url, headless=not args.headed, ready_selector=args.ready_selector) as oracle:
            records = run_payloads_on_oracle(
                payloads,
                oracle,
                settle_delay_seconds=settle_delay,
                output_path=args.output,
            )
    except FuzzError as exc:
        print(f"[Error] {exc}")
        return 1

    print_replay_summary(records)
    if args.output:
        print(f"Records written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
