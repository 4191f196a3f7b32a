"""Oracle interface: the environment that runs payloads through every sanitizer."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional

ERROR_MARKER = "error"


def is_valid_output(output: Optional[str]) -> bool:
    """An output counts only when it is non-empty and not the error marker."""

    return bool(output) and output != ERROR_MARKER


@dataclass
class OracleResult:
    """Per-sanitizer outputs for one submitted payload."""

    outputs: dict[str, Optional[str]] = field(default_factory=dict)

    def valid_outputs(self) -> dict[str, str]:
        return {name: output for name, output in self.outputs.items() if is_valid_output(output)}

    def distinct_outputs(self) -> set[str]:
        return set(self.valid_outputs().values())

    def distinct_count(self) -> int:
        """Number of different valid outputs; identical outputs count once."""

        return len(self.distinct_outputs())


class BaseOracle(ABC):
    """Synchronous adapter around one rendering environment.

    Calls must be serialized: submit, settle, collect_results, in that order,
    one payload at a time.
    """

    @abstractmethod
    def submit(self, genome: str) -> None:
        """Install the payload as input and trigger sanitization."""

    @abstractmethod
    def collect_results(self) -> OracleResult:
        """Read back the per-sanitizer outputs of the last submission."""

    @abstractmethod
    def live_sanitizer_count(self) -> int:
        """How many sanitizers currently produce comparable output."""

    def settle(self, delay_seconds: float) -> None:
        """Wait for asynchronous processing to finish; fixed delay by default."""

        if delay_seconds > 0:
            time.sleep(delay_seconds)

    def close(self) -> None:
        """Release environment resources."""

    def __enter__(self) -> "BaseOracle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FunctionOracle(BaseOracle):
    """Run in-process Python callables as the sanitizers under comparison.

    A sanitizer that raises is reported with the error marker, the same way the
    browser harness shows ``error`` for a failing sanitizer.
    """

    def __init__(
        self,
        sanitizers: dict[str, Callable[[str], Optional[str]]],
        live_count: Optional[int] = None,
    ) -> None:
        self.sanitizers = dict(sanitizers)
        self.live_count = live_count
        self._pending: Optional[str] = None
        self._last = OracleResult()
        self.submissions: list[str] = []

    def submit(self, genome: str) -> None:
        self._pending = genome
        self.submissions.append(genome)

    def collect_results(self) -> OracleResult:
        if self._pending is None:
            return self._last
        outputs: dict[str, Optional[str]] = {}
        for name, sanitize in self.sanitizers.items():
            try:
                outputs[name] = sanitize(self._pending)
            except Exception:
                outputs[name] = ERROR_MARKER
        self._pending = None
        self._last = OracleResult(outputs=outputs)
        return self._last

    def live_sanitizer_count(self) -> int:
        if self.live_count is not None:
            return int(self.live_count)
        return len(self._last.valid_outputs())
