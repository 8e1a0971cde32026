"""
SybilScope - Command Line Entry Point

Runs the analysis pipeline over a JSON file of transactions keyed by
wallet address:

    {"0xabc...": [{"timestamp": 1700000000000, "value": 100.0,
                   "gasPrice": 20.0, "from": "0xabc...", "to": "0xdef..."}]}

Run with:
    python -m sybilscope.main analyze wallets.json --target 0xabc...

Or, once installed:
    sybilscope classify wallets.json --address 0xabc...
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .engine import PopulationReport, WalletClusteringEngine
from .exceptions import ConfigurationError, SybilScopeError
from .features.extractor import FeatureExtractor
from .detection.behavior import BehaviorClassifier
from .secure_logging import configure_secure_logging, get_secure_logger
from .validation import same_address

logger = get_secure_logger(__name__)
console = Console()


def load_transactions(path: Path) -> Dict[str, List[Dict[str, Any]]]:
    """Read an {address: [transaction, ...]} JSON document."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise SybilScopeError(f"Could not read {path}", {'error': str(e)}) from e

    if not isinstance(data, dict):
        raise SybilScopeError(
            "Input must be a JSON object mapping addresses to transaction lists",
            {'path': str(path)}
        )
    return data


# =============================================================================
# Rendering
# =============================================================================

def create_cluster_table(report: PopulationReport) -> Table:
    """Create a rich table of behavioral clusters."""
    table = Table(title="Behavioral Clusters")
    table.add_column("Cluster", style="cyan")
    table.add_column("Wallets", justify="right")
    table.add_column("Cohesion", justify="right")
    table.add_column("Behavior", style="green")
    table.add_column("Suspicion", justify="right", style="yellow")

    for cluster in report.clusters:
        table.add_row(
            cluster.id,
            str(cluster.size),
            f"{cluster.cohesion:.2f}",
            cluster.characteristics.behavior_pattern,
            str(cluster.characteristics.suspicion_score),
        )

    return table


def create_community_table(report: PopulationReport) -> Table:
    """Create a rich table of interaction communities."""
    table = Table(title=f"Communities ({len(report.graph.edges)} edges)")
    table.add_column("Community", style="cyan")
    table.add_column("Members", justify="right")
    table.add_column("Density", justify="right")

    for community in report.graph.communities:
        table.add_row(community.id, str(community.size), f"{community.density:.2f}")

    return table


def render_report(report: PopulationReport) -> None:
    console.print(create_cluster_table(report))
    console.print(create_community_table(report))

    if report.failures:
        console.print(f"\n[dim]Skipped {len(report.failures)} wallet(s) without usable data[/dim]")

    if report.sybil is not None:
        sybil = report.sybil
        style = "bold red" if sybil.is_sybil else "green"
        evidence = "\n".join(f"  - {line}" for line in sybil.evidence) or "  (none)"
        console.print(Panel.fit(
            f"Sybil: [{style}]{'YES' if sybil.is_sybil else 'no'}[/{style}]\n"
            f"Confidence: {sybil.confidence}/100\n"
            f"Pattern: {sybil.pattern.value}\n"
            f"Related wallets: {len(sybil.related_wallets)}\n"
            f"Evidence:\n{evidence}",
            title=f"Sybil Analysis: {sybil.target_address[:10]}..."
        ))


# =============================================================================
# Commands
# =============================================================================

def run_analyze(args: argparse.Namespace) -> int:
    transactions = load_transactions(Path(args.input))
    engine = WalletClusteringEngine(random_state=args.seed)
    report = engine.analyze(
        transactions,
        target_address=args.target,
        k=args.clusters,
        min_interactions=args.min_interactions,
    )

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report)
    return 0


def run_classify(args: argparse.Namespace) -> int:
    transactions = load_transactions(Path(args.input))
    address = next((a for a in transactions if same_address(a, args.address)), None)
    if address is None:
        console.print(f"[red]Address {escape(args.address)} not found in {escape(args.input)}[/red]")
        return 1

    features = FeatureExtractor().extract(address, transactions[address])
    result = BehaviorClassifier().classify(features)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        console.print(Panel.fit(
            f"Pattern: [bold]{result.pattern.value}[/bold]\n"
            f"Confidence: {result.confidence}\n"
            + "\n".join(f"  - {c}" for c in result.characteristics),
            title=f"Behavior: {args.address[:10]}..."
        ))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SybilScope - wallet clustering and sybil detection"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Cluster a wallet population")
    analyze.add_argument("input", help="JSON file of transactions keyed by address")
    analyze.add_argument("--target", "-t", help="Run sybil detection for this address")
    analyze.add_argument("--clusters", "-k", type=int, default=None, help="Number of clusters")
    analyze.add_argument("--seed", type=int, default=None, help="Random seed for reproducible clustering")
    analyze.add_argument("--min-interactions", type=int, default=None, help="Edge threshold for the graph")
    analyze.add_argument("--json", action="store_true", help="Print the report as JSON")
    analyze.set_defaults(handler=run_analyze)

    classify = subparsers.add_parser("classify", help="Classify a single wallet")
    classify.add_argument("input", help="JSON file of transactions keyed by address")
    classify.add_argument("--address", "-a", required=True, help="Wallet to classify")
    classify.add_argument("--json", action="store_true", help="Print the result as JSON")
    classify.set_defaults(handler=run_classify)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with argument handling."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return 2

    configure_secure_logging(
        log_level="DEBUG" if args.debug else settings.log_level,
        json_format=settings.log_json_format
    )

    try:
        return args.handler(args)
    except SybilScopeError as e:
        logger.error("command_failed", command=args.command, error=e.message)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
