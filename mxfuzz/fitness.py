"""Distinct-output fitness scoring against an oracle."""

from __future__ import annotations

from mxfuzz.errors import OracleUnavailable
from mxfuzz.oracle import BaseOracle, OracleResult


class FitnessEvaluator:
    """Score payloads by how many different outputs the sanitizers produce."""

    def __init__(self, oracle: BaseOracle, settle_delay_seconds: float = 0.6, verbose: bool = True) -> None:
        self.oracle = oracle
        self.settle_delay_seconds = max(0.0, float(settle_delay_seconds))
        self.verbose = verbose

    def run(self, genome: str) -> OracleResult:
        """Submit one payload, wait for the oracle to settle, and read back its outputs."""

        try:
            self.oracle.submit(genome)
            self.oracle.settle(self.settle_delay_seconds)
            result = self.oracle.collect_results()
        except OracleUnavailable:
            raise
        except Exception as exc:
            raise OracleUnavailable(f"Oracle evaluation failed for payload {genome[:80]!r}: {exc}") from exc

        if self.verbose:
            self._log_result(genome, result)
        return result

    def evaluate(self, genome: str) -> int:
        return self.run(genome).distinct_count()

    def live_sanitizer_count(self) -> int:
        try:
            return int(self.oracle.live_sanitizer_count())
        except OracleUnavailable:
            raise
        except Exception as exc:
            raise OracleUnavailable(f"Oracle could not report live sanitizers: {exc}") from exc

    @staticmethod
    def _log_result(genome: str, result: OracleResult) -> None:
        print(f"Payload: {genome}")
        print("---")
        print("Sanitizer results:")
        for name, output in result.valid_outputs().items():
            print(f"{name}: {output}")
        print("---")
