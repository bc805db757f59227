"""Report generators for diff, triage and analytics results."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sbomhub.analytics.models import AnalyticsSummary
from sbomhub.models import Severity
from sbomhub.sbom.models import DiffResult
from sbomhub.ssvc.engine import DecisionPolicy
from sbomhub.ssvc.models import SSVCContext, SSVCDecision


@dataclass
class DecisionReport:
    """Outcome of a stateless SSVC calculation."""

    context: SSVCContext
    decision: SSVCDecision
    policy: DecisionPolicy = DecisionPolicy.DEPLOYER

    def to_dict(self) -> dict:
        """Convert to the calculate API response shape."""
        return {"decision": self.decision.value}


@dataclass
class DecisionTableReport:
    """Every context of a policy with its decision."""

    policy: DecisionPolicy
    rows: list[tuple[SSVCContext, SSVCDecision]] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "policy": self.policy.value,
            "rows": [{**ctx.to_dict(), "decision": d.value} for ctx, d in self.rows],
        }


class ReportGenerator(ABC):
    """Abstract base class for report generators."""

    @abstractmethod
    def generate(self, result: Any) -> str:
        """Generate a report.

        Args:
            result: A DiffResult, AnalyticsSummary, DecisionReport or
                DecisionTableReport.

        Returns:
            Formatted report as a string.
        """
        pass


class JSONReporter(ReportGenerator):
    """Generate JSON format reports."""

    def __init__(self, indent: int = 2) -> None:
        """Initialize JSON reporter.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def generate(self, result: Any) -> str:
        """Generate JSON report."""
        return json.dumps(result.to_dict(), indent=self.indent)


class TableReporter(ReportGenerator):
    """Generate rich table format reports for CLI output."""

    SEVERITY_COLORS = {
        Severity.CRITICAL: "red bold",
        Severity.HIGH: "red",
        Severity.MEDIUM: "yellow",
        Severity.LOW: "blue",
        Severity.UNKNOWN: "dim",
    }

    DECISION_COLORS = {
        SSVCDecision.IMMEDIATE: "red bold",
        SSVCDecision.OUT_OF_CYCLE: "red",
        SSVCDecision.SCHEDULED: "yellow",
        SSVCDecision.DEFER: "green",
    }

    def __init__(self) -> None:
        self.console = Console(record=True, force_terminal=True, width=120)

    def generate(self, result: Any) -> str:
        """Generate table report."""
        if isinstance(result, DiffResult):
            self._render_diff(result)
        elif isinstance(result, AnalyticsSummary):
            self._render_analytics(result)
        elif isinstance(result, DecisionReport):
            self._render_decision(result)
        elif isinstance(result, DecisionTableReport):
            self._render_decision_table(result)
        else:
            raise TypeError(f"Cannot render {type(result).__name__} as a table")

        return self.console.export_text()

    def _render_diff(self, result: DiffResult) -> None:
        """Render diff summary and partitions."""
        summary_text = Text()
        summary_text.append("Added: ", style="green")
        summary_text.append(f"{result.added_count}\n")
        summary_text.append("Removed: ", style="red")
        summary_text.append(f"{result.removed_count}\n")
        summary_text.append("Updated: ", style="yellow")
        summary_text.append(f"{result.updated_count}\n")
        summary_text.append("New vulnerabilities: ", style="bold")
        summary_text.append(f"{result.new_vulnerabilities_count}")
        self.console.print(Panel(summary_text, title="SBOM Diff Summary", border_style="blue"))

        if result.added or result.removed:
            table = Table(title="Component Changes", show_header=True, header_style="bold cyan")
            table.add_column("Change", width=8)
            table.add_column("Component", width=30)
            table.add_column("Version", width=15)
            table.add_column("License", width=20)
            for c in result.added:
                table.add_row(Text("added", style="green"), c.name, c.version, c.license or "-")
            for c in result.removed:
                table.add_row(Text("removed", style="red"), c.name, c.version, c.license or "-")
            self.console.print(table)

        if result.updated:
            table = Table(title="Version Updates", show_header=True, header_style="bold cyan")
            table.add_column("Component", width=30)
            table.add_column("Old", width=15)
            table.add_column("New", width=15)
            table.add_column("Fixed", width=40)
            for u in result.updated:
                table.add_row(u.name, u.old_version, u.new_version, ", ".join(u.vulnerabilities_fixed) or "-")
            self.console.print(table)

        if result.new_vulnerabilities:
            table = Table(title="New Vulnerabilities", show_header=True, header_style="bold cyan")
            table.add_column("Severity", width=10)
            table.add_column("CVE ID", width=20)
            table.add_column("Component", width=30)
            table.add_column("Version", width=15)
            ordered = sorted(
                result.new_vulnerabilities,
                key=lambda v: Severity.parse(v.severity).order,
            )
            for v in ordered:
                severity = Severity.parse(v.severity)
                table.add_row(
                    Text(v.severity, style=self.SEVERITY_COLORS[severity]),
                    v.cve_id,
                    v.component,
                    v.version,
                )
            self.console.print(table)

    def _render_decision(self, report: DecisionReport) -> None:
        text = Text()
        for name, value in report.context.to_dict().items():
            text.append(f"{name}: ", style="bold")
            text.append(f"{value}\n")
        text.append("\nDecision: ", style="bold")
        text.append(report.decision.value, style=self.DECISION_COLORS[report.decision])
        self.console.print(
            Panel(text, title=f"SSVC Decision ({report.policy.value})", border_style="blue")
        )

    def _render_decision_table(self, report: DecisionTableReport) -> None:
        table = Table(
            title=f"SSVC Decision Table ({report.policy.value})",
            show_header=True,
            header_style="bold cyan",
        )
        for column in ("Exploitation", "Automatable", "Impact", "Mission", "Safety", "Decision"):
            table.add_column(column)
        for ctx, decision in report.rows:
            table.add_row(
                *ctx.to_dict().values(),
                Text(decision.value, style=self.DECISION_COLORS[decision]),
            )
        self.console.print(table)

    def _render_analytics(self, summary: AnalyticsSummary) -> None:
        stats = summary.summary
        text = Text()
        text.append(f"Period: {summary.period} days\n")
        text.append(f"Open vulnerabilities: {stats.total_open_vulnerabilities}\n")
        text.append(f"Resolved in period: {stats.resolved_in_period}\n")
        text.append(f"Average MTTR: {_hours(stats.average_mttr_hours)}\n")
        text.append(f"Overall SLO achievement: {stats.overall_slo_achievement_pct:.1f}%")
        if stats.compliance_max_score:
            text.append(
                f"\nCompliance score: {stats.current_compliance_score}/{stats.compliance_max_score}"
            )
        self.console.print(Panel(text, title="Remediation Analytics", border_style="blue"))

        table = Table(title="MTTR and SLO by Severity", show_header=True, header_style="bold cyan")
        table.add_column("Severity", width=10)
        table.add_column("Resolved", width=9)
        table.add_column("MTTR", width=12)
        table.add_column("Target", width=10)
        table.add_column("SLO", width=8)
        for mttr in summary.mttr:
            slo = summary.slo_for(mttr.severity)
            table.add_row(
                Text(mttr.severity.value, style=self.SEVERITY_COLORS[mttr.severity]),
                str(mttr.count),
                _hours(mttr.mttr_hours),
                _hours(mttr.target_hours),
                f"{slo.achievement_pct:.1f}%" if slo else "-",
            )
        self.console.print(table)

        ssvc = summary.ssvc
        if ssvc.total_assessed:
            text = Text()
            for decision in reversed(list(SSVCDecision)):
                text.append(f"{decision.value}: ", style=self.DECISION_COLORS[decision])
                text.append(f"{ssvc.count(decision)}\n")
            self.console.print(Panel(text, title="SSVC Decisions", border_style="blue"))


def _hours(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:.1f}h"


def create_reporter(format: str) -> ReportGenerator:
    """Create a reporter for the specified format.

    Args:
        format: Output format ('json' or 'table').

    Returns:
        Appropriate ReportGenerator instance.

    Raises:
        ValueError: If format is not supported.
    """
    if format == "json":
        return JSONReporter()
    elif format == "table":
        return TableReporter()
    else:
        raise ValueError(f"Unsupported format: {format}. Use 'json' or 'table'.")
