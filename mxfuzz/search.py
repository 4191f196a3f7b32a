"""Generation loop for the differential fuzzer (evaluate -> check -> reproduce)."""

from __future__ import annotations

import json
import random
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from statistics import mean
from typing import Any, Optional

from mxfuzz.alphabet import Alphabet
from mxfuzz.errors import ConfigurationError
from mxfuzz.fitness import FitnessEvaluator
from mxfuzz.operators import initial_population, reproduce
from mxfuzz.oracle import BaseOracle


@dataclass
class FuzzConfig:
    """Run parameters, fixed for the duration of a run."""

    population_size: int = 10
    mutation_rate: float = 0.1
    max_generations: int = 100
    min_tokens: int = 1
    max_tokens: int = 10
    settle_delay_seconds: float = 0.6
    seed: Optional[int] = None
    log_dir: Optional[str] = None
    verbose: bool = True

    def validate(self) -> None:
        if self.population_size < 2:
            raise ConfigurationError(f"population_size must be >= 2, got {self.population_size}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ConfigurationError(f"mutation_rate must be within [0, 1], got {self.mutation_rate}")
        if self.max_generations < 1:
            raise ConfigurationError(f"max_generations must be >= 1, got {self.max_generations}")
        if self.min_tokens < 1 or self.max_tokens < self.min_tokens:
            raise ConfigurationError(
                f"token bounds must satisfy 1 <= min_tokens <= max_tokens, got {self.min_tokens}..{self.max_tokens}"
            )
        if self.settle_delay_seconds < 0:
            raise ConfigurationError(f"settle_delay_seconds must be >= 0, got {self.settle_delay_seconds}")


class SearchState(str, Enum):
    INIT = "init"
    EVALUATING = "evaluating"
    REPRODUCING = "reproducing"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass
class SearchResult:
    """Outcome of one run: the winning or best-so-far payload."""

    payload: str
    state: SearchState
    generation: int
    generations_run: int
    fitness: int
    live_sanitizer_count: int
    run_id: str = ""
    history: list[dict[str, Any]] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.state is SearchState.CONVERGED

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["state"] = self.state.value
        return payload


class DifferentialFuzzer:
    """Evolve payloads that maximize disagreement between sanitizers."""

    def __init__(
        self,
        alphabet: Alphabet,
        oracle: BaseOracle,
        config: FuzzConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or FuzzConfig()
        self.config.validate()
        if not isinstance(alphabet, Alphabet) or len(alphabet) == 0:
            raise ConfigurationError("A non-empty Alphabet is required.")
        self.alphabet = alphabet
        self.oracle = oracle
        self.evaluator = FitnessEvaluator(
            oracle,
            settle_delay_seconds=self.config.settle_delay_seconds,
            verbose=self.config.verbose,
        )
        self.rng = rng or random.Random(self.config.seed)
        self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.state = SearchState.INIT
        self.population: list[str] = []
        self.fitnesses: list[int] = []
        self.generation = 0

        self.logs_dir: Optional[Path] = Path(self.config.log_dir) if self.config.log_dir else None
        if self.logs_dir is not None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            self.generation_trace_path = self.logs_dir / "generation_trace.jsonl"
            self.candidate_trace_path = self.logs_dir / "candidate_trace.jsonl"

    def run(self, seed_payload: Optional[str] = None) -> SearchResult:
        """Search until a payload separates every live sanitizer or generations run out."""

        self.state = SearchState.INIT
        self.population = initial_population(
            self.alphabet,
            self.config.population_size,
            self.rng,
            seed_payload=seed_payload,
            min_tokens=self.config.min_tokens,
            max_tokens=self.config.max_tokens,
        )
        self.fitnesses = []
        if seed_payload:
            self._log(f"[Init] starting with pre-formed payload: {seed_payload}")

        history: list[dict[str, Any]] = []
        self._trace(
            "generation",
            {
                "event": "run_start",
                "population_size": self.config.population_size,
                "mutation_rate": self.config.mutation_rate,
                "max_generations": self.config.max_generations,
                "alphabet_size": len(self.alphabet),
                "seed_payload": seed_payload,
            },
        )

        live_count = 0
        for generation in range(self.config.max_generations):
            self.generation = generation
            self.state = SearchState.EVALUATING
            self._log(f"\n[Gen {generation + 1}] evaluating {len(self.population)} payloads...")
            self.fitnesses = self._evaluate_population(generation)

            live_count = self.evaluator.live_sanitizer_count()
            gen_record = self._generation_record(generation, live_count)
            self._log(
                f"[Gen {generation + 1}] live_sanitizers={live_count} "
                f"fitness={gen_record['fitnesses']} best={gen_record['best_fitness']} "
                f"mean={gen_record['mean_fitness']:.2f}"
            )
            history.append(gen_record)
            self._trace("generation", {"event": "generation_end", **gen_record})

            if self.is_converged(self.fitnesses, live_count):
                self.state = SearchState.CONVERGED
                best = self.population[0]
                self._log(f"[Gen {generation + 1}] Found optimal payload: {best}")
                return self._finish(best, self.fitnesses[0], live_count, history)

            if generation == self.config.max_generations - 1:
                break

            self.state = SearchState.REPRODUCING
            self.population = reproduce(
                self.population,
                self.fitnesses,
                self.alphabet,
                self.rng,
                self.config.mutation_rate,
                size=self.config.population_size,
            )

        self.state = SearchState.EXHAUSTED
        best_idx = self.fitnesses.index(max(self.fitnesses))
        self._log(
            f"[Gen {self.generation + 1}] Max generations reached without finding optimal payload; "
            f"best fitness={self.fitnesses[best_idx]}/{live_count}"
        )
        return self._finish(self.population[best_idx], self.fitnesses[best_idx], live_count, history)

    @staticmethod
    def is_converged(fitnesses: list[int], live_count: int) -> bool:
        """Only index 0 is compared against the live sanitizer count."""

        return bool(fitnesses) and fitnesses[0] == live_count

    def _evaluate_population(self, generation: int) -> list[int]:
        fitnesses: list[int] = []
        for idx, genome in enumerate(self.population):
            result = self.evaluator.run(genome)
            score = result.distinct_count()
            fitnesses.append(score)
            self._log(f"[Gen {generation + 1}] candidate {idx + 1}/{len(self.population)} fitness={score}")
            self._trace(
                "candidate",
                {
                    "event": "candidate_evaluated",
                    "generation": generation,
                    "candidate_index": idx,
                    "payload": genome,
                    "fitness": score,
                    "outputs": result.valid_outputs(),
                },
            )
        return fitnesses

    def _generation_record(self, generation: int, live_count: int) -> dict[str, Any]:
        best_idx = self.fitnesses.index(max(self.fitnesses))
        return {
            "generation": generation,
            "fitnesses": list(self.fitnesses),
            "best_index": best_idx,
            "best_fitness": self.fitnesses[best_idx],
            "mean_fitness": mean(self.fitnesses),
            "live_sanitizer_count": live_count,
            "unique_payload_ratio": len(set(self.population)) / max(1, len(self.population)),
        }

    def _finish(self, payload: str, fitness: int, live_count: int, history: list[dict[str, Any]]) -> SearchResult:
        result = SearchResult(
            payload=payload,
            state=self.state,
            generation=self.generation,
            generations_run=self.generation + 1,
            fitness=int(fitness),
            live_sanitizer_count=int(live_count),
            run_id=self.run_id,
            history=history,
        )
        self._trace(
            "generation",
            {
                "event": "run_end",
                "state": self.state.value,
                "generation": self.generation,
                "payload": payload,
                "fitness": int(fitness),
                "live_sanitizer_count": int(live_count),
            },
        )
        return result

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(message)

    def _trace(self, kind: str, payload: dict[str, Any]) -> None:
        if self.logs_dir is None:
            return
        path = self.generation_trace_path if kind == "generation" else self.candidate_trace_path
        record = {"run_id": self.run_id, "time": datetime.now().isoformat(timespec="seconds"), **payload}
        with path.open("a", encoding="utf-8") as file_obj:
            file_obj.write(json.dumps(record, ensure_ascii=False) + "\n")
