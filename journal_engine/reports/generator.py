"""
Report generator.

Generates formatted reports from analysis results.
"""

import logging

from ..config import EngineSettings
from ..models.evolution import DIMENSION_LABELS
from ..models.report import AnalysisReport

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Generates formatted reports from analysis data."""

    def __init__(self, settings: EngineSettings):
        self.settings = settings

    def to_markdown(self, report: AnalysisReport) -> str:
        """
        Convert an analysis report to markdown format.

        Args:
            report: The analysis report

        Returns:
            Markdown formatted string
        """
        lines = []
        m = report.metrics
        evo = report.evolution

        # Header
        lines.append("# Trading Journal Report")
        lines.append("")
        lines.append(f"Generated: {report.generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
        if report.period_start:
            lines.append(f"Period: {report.period_start.strftime('%Y-%m-%d')} to {report.period_end.strftime('%Y-%m-%d') if report.period_end else 'now'}")
        lines.append("")

        # Summary
        lines.append("## Summary")
        lines.append("")
        lines.append(f"- **Trades Evaluated:** {m.total_trades}")
        lines.append(f"- **Rule Compliance:** {m.compliance_rate:.1%}")
        lines.append(f"- **Level:** {evo.level} ({evo.level_name})")
        lines.append(f"- **Phase:** {evo.phase_name}")
        lines.append(f"- **Bottleneck:** {evo.bottleneck_label or 'None'}")
        if not evo.is_meaningful:
            lines.append("- *Not enough closed trades for a meaningful assessment*")
        lines.append("")

        # Rule Status
        lines.append("## Rule Status")
        lines.append("")
        lines.append("| Status | Count | Percentage |")
        lines.append("|--------|-------|------------|")
        total = m.total_trades or 1
        lines.append(f"| Clean | {m.clean_count} | {m.clean_count/total:.1%} |")
        lines.append(f"| Minor Violation | {m.minor_violation_count} | {m.minor_violation_count/total:.1%} |")
        lines.append(f"| Critical Violation | {m.critical_violation_count} | {m.critical_violation_count/total:.1%} |")
        lines.append("")

        # Classification
        lines.append("## Trade Classification")
        lines.append("")
        lines.append(f"- Model trades: **{m.model_count}**")
        lines.append(f"- Neutral trades: **{m.neutral_count}**")
        lines.append(f"- Error trades: **{m.error_count}**")
        lines.append("")

        # Violations
        if m.violations_by_rule:
            lines.append("## Violations by Rule")
            lines.append("")
            lines.append("| Rule | Trades |")
            lines.append("|------|--------|")
            for rule_id in m.most_violated(limit=len(m.violations_by_rule)):
                lines.append(f"| {rule_id} | {m.violations_by_rule[rule_id]} |")
            lines.append("")

        # Win Rate Correlation
        lines.append("## Compliance vs Performance")
        lines.append("")
        lines.append(f"- **Compliant trades win rate:** {m.compliant_win_rate:.1%}")
        lines.append(f"- **Non-compliant trades win rate:** {m.non_compliant_win_rate:.1%}")
        if m.compliant_win_rate > m.non_compliant_win_rate:
            diff = m.compliant_win_rate - m.non_compliant_win_rate
            lines.append(f"- *Following rules improves win rate by {diff:.1%}*")
        lines.append("")

        # Evolution
        lines.append("## Trader Evolution")
        lines.append("")
        lines.append("| Dimension | Progress |")
        lines.append("|-----------|----------|")
        for name, score in evo.progress.scores().items():
            label = DIMENSION_LABELS[name]
            if name == "operational_consistency" and not evo.metrics.consistency_determinate:
                lines.append(f"| {label} | n/a |")
            else:
                lines.append(f"| {label} | {score:.0f}% |")
        lines.append("")
        lines.append(f"- Months observed: {evo.metrics.total_months} ({evo.metrics.green_months} green)")
        lines.append(f"- Current drawdown: {evo.metrics.current_drawdown_percent:.2f}%")
        lines.append(f"- Max drawdown: {evo.metrics.max_drawdown_percent:.2f}%")
        lines.append(f"- Win rate: {evo.metrics.win_rate:.1f}%")
        lines.append(f"- Average R: {evo.metrics.avg_r:.2f}")
        lines.append("")

        # Worst trades
        violating = [e for e in report.evaluations if e.violated_rules]
        if violating:
            violating.sort(key=lambda e: (-len(e.violated_rules), e.trade_id))
            lines.append("## Trades with Most Violations")
            lines.append("")
            lines.append("| Trade | Status | Violations |")
            lines.append("|-------|--------|------------|")
            for e in violating[:5]:
                issues = "; ".join(v.message for v in e.violated_rules[:2])
                lines.append(f"| {e.trade_id} | {e.status.value} | {issues} |")
            lines.append("")

        # Footer
        lines.append("---")
        lines.append("*Report generated by journal-engine*")

        return "\n".join(lines)

    def to_summary(self, report: AnalysisReport) -> str:
        """
        Generate a brief text summary.

        Args:
            report: The analysis report

        Returns:
            Brief summary string
        """
        m = report.metrics
        evo = report.evolution

        summary = (
            f"Evaluated {m.total_trades} trades. "
            f"Compliance: {m.compliance_rate:.0%}. "
            f"Level {evo.level} ({evo.phase_name})."
        )
        if evo.bottleneck_label:
            summary += f" Bottleneck: {evo.bottleneck_label}."
        return summary
