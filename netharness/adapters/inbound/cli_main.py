#!/usr/bin/env python3
"""
Network Harness CLI

Runs network tests and load generations locally, inspects the catalog and
serves the HTTP API.

Usage Examples:
    # Catalog
    netharness topologies
    netharness profiles

    # Drive a built-in profile through a topology
    netharness run-test --topology regional-cluster --profile steady-state --seed 7

    # Inline phases (name:duration:tps[:ramp]) and a fault
    netharness run-test --topology global-distributed \\
        --phase warmup:30:200:10 --phase peak:60:800 \\
        --fault validator-us-east-1:down:40:20

    # Load only, written to JSON
    netharness generate --profile burst-pattern --seed 1 -o generation.json

    # Analyze a JSON list of transactions
    netharness analyze transactions.json

    # HTTP API
    netharness serve --port 8000
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

from netharness.config import Container, Settings
from netharness.domain.errors import HarnessError
from netharness.domain.services import analyze_transaction_patterns


# =============================================================================
# Argument Parsing
# =============================================================================

def parse_phase(value: str) -> Dict[str, Any]:
    """``name:duration:tps[:ramp]`` -> phase dict."""
    parts = value.split(":")
    if len(parts) not in (3, 4):
        raise argparse.ArgumentTypeError(f"expected name:duration:tps[:ramp], got '{value}'")
    try:
        phase = {"name": parts[0], "duration": float(parts[1]), "target_tps": float(parts[2])}
        if len(parts) == 4:
            phase["ramp_rate"] = float(parts[3])
    except ValueError:
        raise argparse.ArgumentTypeError(f"non-numeric value in phase '{value}'")
    return phase


def parse_fault(value: str) -> Dict[str, Any]:
    """``node:status:at[:duration]`` -> fault dict."""
    parts = value.split(":")
    if len(parts) not in (3, 4):
        raise argparse.ArgumentTypeError(f"expected node:status:at[:duration], got '{value}'")
    try:
        fault = {"node_id": parts[0], "status": parts[1], "at": float(parts[2])}
        if len(parts) == 4:
            fault["duration"] = float(parts[3])
    except ValueError:
        raise argparse.ArgumentTypeError(f"non-numeric value in fault '{value}'")
    return fault


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with subcommands."""
    common_parser = argparse.ArgumentParser(add_help=False)

    config_group = common_parser.add_argument_group("Configuration")
    config_group.add_argument("--catalog", metavar="FILE", help="YAML catalog with extra entries")
    config_group.add_argument("--tick", type=float, help="Simulated seconds per tick")

    output_group = common_parser.add_argument_group("Output")
    output_group.add_argument("--output", "-o", metavar="FILE", help="Export results to JSON")
    output_group.add_argument("--json", action="store_true", help="Print JSON to stdout")
    output_group.add_argument("--quiet", "-q", action="store_true", help="Minimal output")
    output_group.add_argument("--no-color", action="store_true", help="Plain output")
    output_group.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(
        prog="netharness",
        description="Simulated network test harness: load profiles driven through miniature testnets.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subs = parser.add_subparsers(dest="command", help="Command")

    subs.add_parser("topologies", help="List topologies", parents=[common_parser])
    subs.add_parser("profiles", help="List load profiles, behaviors and patterns", parents=[common_parser])

    # run-test
    rt = subs.add_parser("run-test", help="Run a network test to completion", parents=[common_parser])
    rt.add_argument("--topology", "-t", required=True, help="Topology id")
    load = rt.add_mutually_exclusive_group(required=True)
    load.add_argument("--profile", "-p", help="Load profile id")
    load.add_argument("--phase", type=parse_phase, action="append", metavar="NAME:DUR:TPS[:RAMP]",
                      help="Inline phase (repeatable)")
    rt.add_argument("--pattern", help="Transaction pattern id")
    rt.add_argument("--seed", type=int, help="Random seed")
    rt.add_argument("--regions", help="Comma-separated regions to restrict transactions to")
    rt.add_argument("--extra-latency", type=float, default=0.0, help="Added latency per hop (ms)")
    rt.add_argument("--packet-loss", type=float, default=0.0, help="Packet loss fraction (0-1)")
    rt.add_argument("--fault", type=parse_fault, action="append", metavar="NODE:STATUS:AT[:DUR]",
                    help="Scheduled node fault (repeatable)")
    rt.add_argument("--random-failures", type=int, default=0, help="Random node failures to inject")

    # generate
    gen = subs.add_parser("generate", help="Generate load for a profile", parents=[common_parser])
    gen.add_argument("--profile", "-p", required=True, help="Load profile id")
    gen.add_argument("--seed", type=int, help="Random seed")
    gen.add_argument("--regions", help="Comma-separated regions")
    gen.add_argument("--behaviors", help="Comma-separated user behaviors (overrides the profile mix)")
    gen.add_argument("--pattern", action="append", help="Transaction pattern id (repeatable)")
    gen.add_argument("--error-rate", type=float, help="Simulated error rate (0-1)")

    # analyze
    an = subs.add_parser("analyze", help="Analyze a JSON file of transactions", parents=[common_parser])
    an.add_argument("file", help="JSON list of transactions, or an object with 'transactions'/'sample'")

    # serve
    sv = subs.add_parser("serve", help="Serve the HTTP API", parents=[common_parser])
    sv.add_argument("--host", default="0.0.0.0", help="Bind address")
    sv.add_argument("--port", type=int, default=8000, help="Port")
    sv.add_argument("--reload", action="store_true", help="Auto-reload on code changes")

    return parser


def _split(value: Optional[str]) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


# =============================================================================
# Command Handlers
# =============================================================================

def handle_topologies(args, container, reporter) -> Any:
    topologies = container.topology_registry().list_topologies()
    if not args.quiet:
        reporter.section("Topologies")
        reporter.table(
            ["Id", "Name", "Nodes", "Links", "Regions", "Custom"],
            [[t.id, t.name, len(t.nodes), len(t.links), ", ".join(t.regions), "yes" if t.custom else ""]
             for t in topologies],
        )
    return [t.to_dict() for t in topologies]


def handle_profiles(args, container, reporter) -> Any:
    store = container.profile_store()
    profiles = store.list_load_profiles()
    behaviors = store.list_user_behaviors()
    patterns = store.list_patterns()
    if not args.quiet:
        reporter.section("Load profiles")
        reporter.table(
            ["Id", "Duration", "Peak TPS", "Transactions", "Phases"],
            [[p.id, f"{p.duration:.0f}s", f"{p.overall.peak_tps:.0f}", p.overall.total_transactions,
              " > ".join(p.phase_names)] for p in profiles],
        )
        reporter.section("User behaviors")
        reporter.table(
            ["Id", "Timing", "Region", "Types"],
            [[b.id, b.timing.value, b.region, ", ".join(b.type_weights)] for b in behaviors],
        )
        reporter.section("Transaction patterns")
        reporter.table(
            ["Id", "Behaviors"],
            [[p.id, ", ".join(f"{k}={v:g}" for k, v in p.behavior_weights.items())] for p in patterns],
        )
    return {
        "load_profiles": [p.to_dict() for p in profiles],
        "user_behaviors": [b.to_dict() for b in behaviors],
        "patterns": [p.to_dict() for p in patterns],
    }


def handle_run_test(args, container, reporter) -> Any:
    scenario: Dict[str, Any] = {
        "name": f"cli-{args.topology}",
        "pattern_id": args.pattern,
        "seed": args.seed,
        "regions": _split(args.regions),
        "network": {"extra_latency_ms": args.extra_latency, "packet_loss": args.packet_loss},
        "faults": args.fault or [],
        "random_node_failures": args.random_failures,
    }
    if args.profile:
        scenario["profile_id"] = args.profile
    else:
        scenario["phases"] = args.phase

    orchestrator = container.test_orchestrator()
    run = orchestrator.start_network_test(args.topology, scenario)
    if not args.quiet:
        reporter.info(f"Started {run.id} on {run.topology_id} (seed={run.scenario.seed})")
    try:
        run = orchestrator.run_to_completion(run.id)
    except KeyboardInterrupt:
        orchestrator.stop_test(run.id)
        run = orchestrator.run_to_completion(run.id)
    if not args.quiet:
        reporter.test_run(run)
    return run.to_dict()


def handle_generate(args, container, reporter) -> Any:
    options: Dict[str, Any] = {
        "seed": args.seed,
        "regions": _split(args.regions),
        "user_behaviors": _split(args.behaviors),
        "pattern_ids": args.pattern or [],
    }
    if args.error_rate is not None:
        options["error_rate"] = args.error_rate

    tracker = container.generation_tracker()
    generation = tracker.generate_load(args.profile, options)
    if not args.quiet:
        reporter.info(f"Started {generation.id} for {generation.profile_id} (seed={generation.options.seed})")
    try:
        generation = tracker.run_to_completion(generation.id)
    except KeyboardInterrupt:
        tracker.stop_generation(generation.id)
        generation = tracker.run_to_completion(generation.id)
    if not args.quiet:
        reporter.generation(generation)
    return generation.to_dict()


def handle_analyze(args, container, reporter) -> Any:
    with open(args.file, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("transactions", data.get("sample", []))
    if not isinstance(data, list):
        raise ValueError(f"{args.file} does not contain a list of transactions")

    analysis = analyze_transaction_patterns(data, container.profile_store().list_user_behaviors())
    if not args.quiet:
        reporter.analysis(analysis)
    return analysis.to_dict()


def handle_serve(args, container, reporter) -> Any:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return None


HANDLERS = {
    "topologies": handle_topologies,
    "profiles": handle_profiles,
    "run-test": handle_run_test,
    "generate": handle_generate,
    "analyze": handle_analyze,
    "serve": handle_serve,
}


# =============================================================================
# Main Entry Point
# =============================================================================

def build_settings(args) -> Settings:
    """Environment settings with CLI overrides; local runs are stepped by hand."""
    settings = Settings.from_env()
    overrides: Dict[str, Any] = {}
    if args.command != "serve":
        overrides.update(auto_drive=False, tick_interval=0.0)
    if args.catalog:
        overrides["catalog_path"] = args.catalog
    if args.tick:
        overrides["tick_duration"] = args.tick
    return replace(settings, **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = build_settings(args)
    log_level = (
        logging.WARNING if args.quiet
        else logging.DEBUG if args.verbose
        else getattr(logging, settings.log_level, logging.INFO)
    )
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    container = Container.from_settings(settings)
    reporter = container.reporter(use_color=not args.no_color and sys.stdout.isatty())

    try:
        result_data = HANDLERS[args.command](args, container, reporter)

        if args.json and result_data is not None:
            print(json.dumps(result_data, indent=2, default=str))

        if args.output and result_data is not None:
            with open(args.output, "w") as f:
                json.dump(result_data, f, indent=2, default=str)
            if not args.quiet:
                reporter.success(f"Results saved to: {args.output}")

        return 0

    except HarnessError as e:
        reporter.error(str(e))
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except Exception as e:
        reporter.error(f"Error: {e}")
        if args.verbose:
            logging.exception("Command failed")
        return 1
    finally:
        container.close()


if __name__ == "__main__":
    sys.exit(main())
