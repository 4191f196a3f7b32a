"""Differential mXSS fuzzer runtime exports."""

from mxfuzz.alphabet import Alphabet, load_alphabet, wrap_tag
from mxfuzz.errors import ConfigurationError, FuzzError, OracleUnavailable
from mxfuzz.evaluator import run_payloads_on_oracle
from mxfuzz.fitness import FitnessEvaluator
from mxfuzz.operators import crossover, initial_population, mutate, random_genome, reproduce
from mxfuzz.oracle import ERROR_MARKER, BaseOracle, FunctionOracle, OracleResult
from mxfuzz.search import DifferentialFuzzer, FuzzConfig, SearchResult, SearchState
from mxfuzz.selection import select_parent_indices, select_parents, weighted_random_choice

__all__ = [
    "Alphabet",
    "load_alphabet",
    "wrap_tag",
    "ConfigurationError",
    "FuzzError",
    "OracleUnavailable",
    "run_payloads_on_oracle",
    "FitnessEvaluator",
    "crossover",
    "initial_population",
    "mutate",
    "random_genome",
    "reproduce",
    "ERROR_MARKER",
    "BaseOracle",
    "FunctionOracle",
    "OracleResult",
    "DifferentialFuzzer",
    "FuzzConfig",
    "SearchResult",
    "SearchState",
    "select_parent_indices",
    "select_parents",
    "weighted_random_choice",
]
