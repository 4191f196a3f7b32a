"""Replay fixed payload lists against an oracle and record per-sanitizer outputs."""

from __future__ import annotations

import json
import os
from typing import Any, Iterable, Optional

from tqdm import tqdm

from mxfuzz.fitness import FitnessEvaluator
from mxfuzz.oracle import BaseOracle


def run_payloads_on_oracle(
    payloads: Iterable[str],
    oracle: BaseOracle,
    settle_delay_seconds: float = 0.6,
    output_path: Optional[str] = None,
    show_progress: bool = True,
) -> list[dict[str, Any]]:
    """Evaluate each payload in order and optionally persist JSONL records."""

    evaluator = FitnessEvaluator(oracle, settle_delay_seconds=settle_delay_seconds, verbose=False)
    payload_list = list(payloads)
    records: list[dict[str, Any]] = []
    for idx, payload in enumerate(tqdm(payload_list, desc="replay", disable=not show_progress)):
        result = evaluator.run(payload)
        records.append(
            {
                "idx": idx,
                "payload": payload,
                "fitness": result.distinct_count(),
                "live_sanitizer_count": evaluator.live_sanitizer_count(),
                "outputs": dict(result.outputs),
            }
        )

    if output_path:
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as file_obj:
            for record in records:
                file_obj.write(json.dumps(record, ensure_ascii=False) + "\n")

    return records


def print_replay_summary(records: list[dict[str, Any]]) -> None:
    """Print one line per payload plus how many fully separated the sanitizers."""

    separated = 0
    print("\n=== replay results ===")
    for record in records:
        full = record["live_sanitizer_count"] > 0 and record["fitness"] == record["live_sanitizer_count"]
        separated += int(full)
        marker = " *" if full else ""
        print(f"[{record['idx']}] fitness={record['fitness']}/{record['live_sanitizer_count']}{marker} {record['payload']}")
    print(f"separating payloads: {separated}/{len(records)}")
