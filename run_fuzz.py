"""CLI entrypoint for the differential mXSS fuzzer."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from mxfuzz.alphabet import load_alphabet
from mxfuzz.browser_oracle import PlaywrightOracle
from mxfuzz.env_utils import env_bool, env_float, first_env, load_env_file, parse_bool
from mxfuzz.errors import ConfigurationError, FuzzError
from mxfuzz.oracle import BaseOracle
from mxfuzz.search import DifferentialFuzzer, FuzzConfig, SearchResult

# Keys accepted under ``oracle.selectors`` in the config file.
SELECTOR_KEYS = {"input", "submit", "result", "name", "output"}


def load_experiment_config(path: str | None, allow_missing: bool = False) -> dict[str, Any]:
    """Load JSON/YAML run config file."""

    if not path:
        return {}

    config_path = Path(path)
    if not config_path.exists():
        if allow_missing:
            return {}
        raise ConfigurationError(f"Config file not found: {path}")

    text = config_path.read_text(encoding="utf-8")
    try:
        if config_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot parse config file {path}: {exc}") from exc
    return payload if isinstance(payload, dict) else {}


def coerce_setting(name: str, value: Any, cast: Callable[[Any], Any]) -> Any:
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from exc


def run_campaign(
    html_tags_path: str,
    oracle_factory: Callable[[], BaseOracle],
    config: FuzzConfig,
    seed_payload: Optional[str] = None,
) -> SearchResult:
    """Load the alphabet, then open the oracle and run the search.

    The alphabet is loaded first so a bad tags file fails before any oracle is
    started.
    """

    config.validate()
    alphabet = load_alphabet(html_tags_path)
    with oracle_factory() as oracle:
        fuzzer = DifferentialFuzzer(alphabet=alphabet, oracle=oracle, config=config)
        return fuzzer.run(seed_payload=seed_payload)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Evolve payloads that make HTML sanitizers disagree")
    default_config_path = "configs/fuzz.yaml"
    parser.add_argument(
        "--config",
        default=default_config_path,
        help=f"Path to YAML/JSON run config (default: {default_config_path})",
    )
    parser.add_argument("--no-config", action="store_true", help="Ignore config file and use only CLI args + env vars")
    parser.add_argument("--url", default=None, help="Sanitizer comparison page (fallback: MXFUZZ_TARGET_URL)")
    parser.add_argument("--html-tags", default=None, help="Tag list, one name per line (fallback: MXFUZZ_HTML_TAGS)")
    parser.add_argument("--payload", default=None, help="Optional seed payload evaluated first at generation 0")
    parser.add_argument("--population-size", type=int, default=10)
    parser.add_argument("--mutation-rate", type=float, default=0.1)
    parser.add_argument("--generations", type=int, default=100)
    parser.add_argument("--min-tokens", type=int, default=1)
    parser.add_argument("--max-tokens", type=int, default=10)
    parser.add_argument("--settle-delay", type=float, default=None, help="Seconds to wait after each submission")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for a reproducible search")
    parser.add_argument("--log-dir", default=None, help="Directory for JSONL generation/candidate traces")
    parser.add_argument("--output", default="outputs/fuzz_result.json", help="Where to save the run summary")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--ready-selector", default=None, help="Selector signalling sanitization finished")
    parser.add_argument("--quiet", action="store_true", help="Suppress per-payload logs")
    parser.add_argument("--env-file", default=".env", help="Path to env file (default: .env)")
    args = parser.parse_args(argv)
    cli_tokens = list(sys.argv[1:] if argv is None else argv)

    load_env_file(args.env_file)

    try:
        config_doc = (
            {}
            if args.no_config
            else load_experiment_config(args.config, allow_missing=(args.config == default_config_path))
        )
    except ConfigurationError as exc:
        print(f"[Error] {exc}")
        return 1
    search_cfg = config_doc.get("search", {}) if isinstance(config_doc.get("search", {}), dict) else {}
    oracle_cfg = config_doc.get("oracle", {}) if isinstance(config_doc.get("oracle", {}), dict) else {}

    def resolve_cli_or_config(arg_name: str, config_value: Any) -> Any:
        cli_value = getattr(args, arg_name)
        flag = f"--{arg_name.replace('_', '-')}"
        provided = any(token == flag or token.startswith(f"{flag}=") for token in cli_tokens)
        if provided:
            return cli_value
        return cli_value if config_value is None else config_value

    url = resolve_cli_or_config("url", oracle_cfg.get("url")) or first_env(["MXFUZZ_TARGET_URL", "TARGET_URL"])
    html_tags = resolve_cli_or_config("html_tags", search_cfg.get("html_tags")) or first_env(
        ["MXFUZZ_HTML_TAGS", "HTML_TAGS"]
    )
    seed_payload = resolve_cli_or_config("payload", search_cfg.get("seed_payload"))
    settle_delay = resolve_cli_or_config("settle_delay", oracle_cfg.get("settle_delay_seconds"))
    if settle_delay is None:
        settle_delay = env_float(["MXFUZZ_SETTLE_DELAY_SECONDS", "SETTLE_DELAY_SECONDS"], default=0.6)
    if args.headed:
        headless = False
    else:
        headless = parse_bool(oracle_cfg.get("headless"), default=env_bool(["MXFUZZ_HEADLESS"], default=True))
    ready_selector = resolve_cli_or_config("ready_selector", oracle_cfg.get("ready_selector"))
    selectors_cfg = oracle_cfg.get("selectors", {}) if isinstance(oracle_cfg.get("selectors", {}), dict) else {}
    unknown_selectors = sorted(set(selectors_cfg) - SELECTOR_KEYS)
    if unknown_selectors:
        print(f"[Warn] ignoring unknown oracle selectors: {', '.join(unknown_selectors)}")
    selectors = {f"{key}_selector": str(value) for key, value in selectors_cfg.items() if key in SELECTOR_KEYS}

    if not url:
        print("[Error] Please provide --url or set MXFUZZ_TARGET_URL")
        return 1
    if not html_tags:
        print("[Error] Please provide --html-tags or set MXFUZZ_HTML_TAGS")
        return 1

    seed_value = resolve_cli_or_config("seed", search_cfg.get("seed"))
    try:
        config = FuzzConfig(
            population_size=coerce_setting(
                "population_size", resolve_cli_or_config("population_size", search_cfg.get("population_size")), int
            ),
            mutation_rate=coerce_setting(
                "mutation_rate", resolve_cli_or_config("mutation_rate", search_cfg.get("mutation_rate")), float
            ),
            max_generations=coerce_setting(
                "max_generations", resolve_cli_or_config("generations", search_cfg.get("max_generations")), int
            ),
            min_tokens=coerce_setting("min_tokens", resolve_cli_or_config("min_tokens", search_cfg.get("min_tokens")), int),
            max_tokens=coerce_setting("max_tokens", resolve_cli_or_config("max_tokens", search_cfg.get("max_tokens")), int),
            settle_delay_seconds=coerce_setting("settle_delay_seconds", settle_delay, float),
            seed=None if seed_value is None else coerce_setting("seed", seed_value, int),
            log_dir=resolve_cli_or_config("log_dir", search_cfg.get("log_dir")),
            verbose=not args.quiet,
        )
    except ConfigurationError as exc:
        print(f"[Error] {exc}")
        return 1

    if config.population_size < 4:
        print(
            f"[Warn] population_size={config.population_size} leaves very little room for crossover; "
            "prefer population_size>=4."
        )

    def oracle_factory() -> BaseOracle:
        return PlaywrightOracle(url=str(url), headless=headless, ready_selector=ready_selector, **selectors)

    if config_doc:
        print(f"Loaded config: {args.config}")
    try:
        result = run_campaign(str(html_tags), oracle_factory, config, seed_payload=seed_payload)
    except FuzzError as exc:
        print(f"[Error] {exc}")
        return 1

    summary = result.to_dict()
    summary["target_url"] = url
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(summary, ensure_ascii=False, indent=2), encoding="utf-8")

    print(f"Fuzzing finished: state={result.state.value} generations={result.generations_run}")
    print(f"Best payload ({result.fitness}/{result.live_sanitizer_count}): {result.payload}")
    print(f"Summary written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
