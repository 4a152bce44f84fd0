"""
Journal engine runner.

Command-line entry point: evaluates trade files against trader settings.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .analyzer import JournalAnalyzer
from .config import load_settings
from .data.journal_file import JournalFileError, load_settings_file, load_trades
from .models.settings import Settings
from .models.trade import MalformedTradeError
from .reports.generator import ReportGenerator

logger = logging.getLogger(__name__)


class JournalRunner:
    """
    Runner for the journal engine.

    Supports multiple modes:
    - evaluate: Evaluate every trade against the rules
    - evolution: Classify the trader's evolution
    - report: Generate a compliance and evolution report
    """

    def __init__(self, config_path: Optional[str] = None):
        self.settings = load_settings(config_path)
        self.analyzer = JournalAnalyzer(self.settings)
        self.report_generator = ReportGenerator(self.settings)

    def _load(self, trades_path: str, settings_path: Optional[str]):
        trades = load_trades(trades_path)
        trader_settings = load_settings_file(settings_path) if settings_path else Settings()
        return trades, trader_settings

    def run_evaluation(self, trades_path: str, settings_path: Optional[str] = None) -> dict:
        """Evaluate all trades; returns serializable trades with their evaluations."""
        trades, trader_settings = self._load(trades_path, settings_path)
        evaluations = self.analyzer.evaluate_trades(trades, trader_settings)

        violating = sum(1 for e in evaluations if not e.is_compliant)
        logger.info(f"Evaluation complete: {len(evaluations)} trades, {violating} with violations")

        return {
            "trades": [
                {**t.to_dict(), "evaluation": e.to_dict()}
                for t, e in zip(self.analyzer.evaluated_trades(trades, trader_settings), evaluations)
            ]
        }

    def run_evolution(self, trades_path: str, settings_path: Optional[str] = None) -> dict:
        """Classify trader evolution."""
        trades, trader_settings = self._load(trades_path, settings_path)
        result = self.analyzer.evolution(trades, trader_settings)
        logger.info(f"Trader level {result.level} ({result.phase.value})")
        return result.to_dict()

    def generate_report(
        self,
        trades_path: str,
        settings_path: Optional[str] = None,
        output_path: Optional[str] = None,
        format: str = "json",
    ) -> str:
        """
        Generate a report.

        Args:
            trades_path: Trades file
            settings_path: Trader settings file
            output_path: Where to save the report
            format: Output format (json, markdown)

        Returns:
            Path to generated report
        """
        trades, trader_settings = self._load(trades_path, settings_path)
        report = self.analyzer.generate_report(trades, trader_settings)

        if output_path is None:
            output_dir = Path(self.settings.report_output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            extension = "md" if format == "markdown" else format
            output_path = str(output_dir / f"journal_report_{timestamp}.{extension}")

        if format == "json":
            with open(output_path, "w") as f:
                json.dump(report.to_dict(), f, indent=2, default=str)
        elif format == "markdown":
            content = self.report_generator.to_markdown(report)
            with open(output_path, "w") as f:
                f.write(content)
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Report saved to {output_path}")
        print(self.report_generator.to_summary(report))
        return output_path


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Trading journal rule evaluation and trader evolution"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to engine config file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_inputs(sub):
        sub.add_argument("trades", help="Trades file (JSON or YAML)")
        sub.add_argument(
            "--settings",
            "-s",
            help="Trader settings file (JSON or YAML)",
        )

    # Evaluate command
    evaluate_parser = subparsers.add_parser("evaluate", help="Evaluate trades against rules")
    add_inputs(evaluate_parser)

    # Evolution command
    evolution_parser = subparsers.add_parser("evolution", help="Classify trader evolution")
    add_inputs(evolution_parser)

    # Report command
    report_parser = subparsers.add_parser("report", help="Generate report")
    add_inputs(report_parser)
    report_parser.add_argument(
        "--output",
        "-o",
        help="Output file path",
    )
    report_parser.add_argument(
        "--format",
        "-f",
        choices=["json", "markdown"],
        default="json",
        help="Output format",
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    runner = JournalRunner(args.config)

    try:
        if args.command == "evaluate":
            output = runner.run_evaluation(args.trades, args.settings)
            print(json.dumps(output, indent=2, default=str))

        elif args.command == "evolution":
            output = runner.run_evolution(args.trades, args.settings)
            print(json.dumps(output, indent=2, default=str))

        elif args.command == "report":
            path = runner.generate_report(
                args.trades,
                args.settings,
                output_path=args.output,
                format=args.format,
            )
            print(f"Report saved to: {path}")

    except MalformedTradeError as e:
        logger.error(f"Cannot evaluate trade history: {e}")
        sys.exit(2)
    except JournalFileError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
