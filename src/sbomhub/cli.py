"""Command-line interface for sbomhub."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console

from sbomhub import __version__
from sbomhub.analytics import (
    ComplianceSnapshot,
    ResolutionEvent,
    RiskAnalyticsAggregator,
    TimedDecision,
    validate_period_days,
)
from sbomhub.config import CONFIG_FILENAMES, Config, ConfigError, load_config, write_config
from sbomhub.lookup import StaticVulnerabilityLookup
from sbomhub.models import ValidationError
from sbomhub.reporter import DecisionReport, DecisionTableReport, create_reporter
from sbomhub.sbom import IdentityMode, SBOMDiffer, load_components
from sbomhub.ssvc import (
    DecisionPolicy,
    SSVCContext,
    ThreatSignals,
    auto_assess,
    decide,
    decision_table,
)
from sbomhub.ssvc.models import FACTORS

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    """Send log records to stderr at the configured level."""
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("sbomhub").setLevel(log_level)


def _fail(error: Exception) -> None:
    """Report an input or configuration error and exit with status 2."""
    if isinstance(error, ValidationError):
        click.echo(f"Error: {error.message}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(2)


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError("document", path, f"{path} is not valid JSON: {e}") from e


def _records(data: Any, key: str) -> list:
    """Accept a bare list or an object wrapping the list under ``key``."""
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValidationError(key, type(data).__name__, f"expected a list of {key}")
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValidationError(f"{key}[{index}]", item, f"{key} entries must be objects")
    return data


def _output_result(result: Any, format: str, output: Optional[str]) -> None:
    """Output a result in the specified format."""
    reporter = create_reporter(format)
    report = reporter.generate(result)

    if output:
        Path(output).write_text(report, encoding="utf-8")
        console.print(f"[green]Report written to {output}[/green]")
    elif format == "json":
        click.echo(report)
    else:
        # Table format already rendered via rich
        console.print(report, end="", markup=False, highlight=False)


@click.group()
@click.version_option(version=__version__, prog_name="sbomhub")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file (default: .sbomhub.yaml in the working directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """sbomhub - SBOM diffing, SSVC triage and remediation analytics."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except (ConfigError, ValueError) as e:
        _fail(e)

    _setup_logging("DEBUG" if verbose else config.log_level)
    ctx.obj = config


# =============================================================================
# SBOM Diff
# =============================================================================


@main.command()
@click.argument("base", type=click.Path(exists=True, dir_okay=False))
@click.argument("target", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--vulns",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON catalog of vulnerabilities per component version",
)
@click.option("--osv", is_flag=True, help="Look up vulnerabilities in the OSV database")
@click.option(
    "--identity",
    type=click.Choice([m.value for m in IdentityMode]),
    default=None,
    help="Component identity matching (default: from config)",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(), help="Write output to file")
@click.option(
    "--fail-on-new",
    is_flag=True,
    help="Exit with status 1 when the target introduces vulnerabilities",
)
@click.pass_obj
def diff(
    config: Config,
    base: str,
    target: str,
    vulns: Optional[str],
    osv: bool,
    identity: Optional[str],
    format: str,
    output: Optional[str],
    fail_on_new: bool,
) -> None:
    """Compare two SBOM component inventories.

    BASE and TARGET are CycloneDX, SPDX or plain component list JSON files.
    """
    if vulns and osv:
        _fail(click.UsageError("--vulns and --osv are mutually exclusive"))

    try:
        base_components = load_components(Path(base))
        target_components = load_components(Path(target))
        lookup = StaticVulnerabilityLookup.from_file(Path(vulns)) if vulns else None
    except (ValueError, OSError) as e:
        _fail(e)

    logger.debug(f"Loaded {len(base_components)} base and {len(target_components)} target components")

    mode = IdentityMode(identity) if identity else config.identity_mode

    if osv:
        from sbomhub.osv_client import OSVClient

        with OSVClient(
            timeout=config.osv_timeout,
            cache_ttl=config.osv_cache_ttl,
            base_url=config.osv_base_url,
            default_ecosystem=config.osv_default_ecosystem,
        ) as client:
            if format != "json":
                console.print("[blue]Querying OSV for vulnerabilities...[/blue]")
            client.prefetch(base_components + target_components)
            result = SBOMDiffer(lookup=client, mode=mode).diff(base_components, target_components)
    else:
        result = SBOMDiffer(lookup=lookup, mode=mode).diff(base_components, target_components)

    _output_result(result, format, output)

    if fail_on_new and result.new_vulnerabilities:
        if format != "json":
            console.print(
                f"\n[red]Target introduces {result.new_vulnerabilities_count} vulnerability(ies)[/red]"
            )
        sys.exit(1)


# =============================================================================
# SSVC Commands
# =============================================================================


@main.group()
def ssvc() -> None:
    """SSVC vulnerability triage."""
    pass


def _policy_option(func):
    return click.option(
        "--policy",
        type=click.Choice([p.value for p in DecisionPolicy]),
        default=None,
        help="Decision table (default: from config)",
    )(func)


def _format_option(func):
    return click.option(
        "--format",
        "-f",
        type=click.Choice(["json", "table"]),
        default="json",
        help="Output format",
    )(func)


@ssvc.command("calculate")
@click.option("--exploitation", required=True, help="none, poc or active")
@click.option("--automatable", required=True, help="yes or no")
@click.option("--technical-impact", required=True, help="partial or total")
@click.option("--mission-prevalence", required=True, help="minimal, support or essential")
@click.option("--safety-impact", required=True, help="minimal or significant")
@_policy_option
@_format_option
@click.pass_obj
def ssvc_calculate(config: Config, policy: Optional[str], format: str, **factors: str) -> None:
    """Calculate the remediation decision for one context."""
    try:
        context = SSVCContext.from_dict({name: factors[name] for name in FACTORS})
    except ValidationError as e:
        _fail(e)

    chosen = DecisionPolicy(policy) if policy else config.ssvc_policy
    report = DecisionReport(context=context, decision=decide(context, chosen), policy=chosen)
    _output_result(report, format, None)


@ssvc.command("table")
@_policy_option
@_format_option
@click.pass_obj
def ssvc_table(config: Config, policy: Optional[str], format: str) -> None:
    """Print the decision for every context of a policy."""
    chosen = DecisionPolicy(policy) if policy else config.ssvc_policy
    _output_result(DecisionTableReport(policy=chosen, rows=decision_table(chosen)), format, None)


@ssvc.command("auto")
@click.argument("cve_id")
@click.option("--project", "project_id", default="default", help="Project identifier")
@click.option("--in-kev", is_flag=True, help="The CVE is in the KEV catalog")
@click.option("--epss", type=float, default=None, help="EPSS probability (0-1)")
@click.option("--cvss", type=float, default=None, help="CVSS base score")
@_policy_option
@click.pass_obj
def ssvc_auto(
    config: Config,
    cve_id: str,
    project_id: str,
    in_kev: bool,
    epss: Optional[float],
    cvss: Optional[float],
    policy: Optional[str],
) -> None:
    """Auto-assess CVE_ID from KEV, EPSS and CVSS signals."""
    chosen = DecisionPolicy(policy) if policy else config.ssvc_policy
    assessment = auto_assess(
        project_id=project_id,
        vulnerability_id=cve_id,
        cve_id=cve_id,
        signals=ThreatSignals(in_kev=in_kev, epss_score=epss, cvss_score=cvss),
        defaults=config.ssvc_defaults,
        policy=chosen,
    )
    click.echo(json.dumps(assessment.to_dict(), indent=2))


# =============================================================================
# Analytics
# =============================================================================


@main.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--period-days",
    "-p",
    type=int,
    default=None,
    help="Trailing window in days (default: from config)",
)
@click.option(
    "--decisions",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON list of SSVC decisions with timestamps",
)
@click.option(
    "--compliance",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON list of daily compliance scores",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(), help="Write output to file")
@click.pass_obj
def analytics(
    config: Config,
    events_file: str,
    period_days: Optional[int],
    decisions: Optional[str],
    compliance: Optional[str],
    format: str,
    output: Optional[str],
) -> None:
    """Compute MTTR, SLO achievement and trends from resolution events.

    EVENTS_FILE is a JSON list of events with severity, detected_at and
    an optional resolved_at.
    """
    try:
        window = validate_period_days(
            period_days, config.default_period_days, config.max_period_days
        )
        events = [
            ResolutionEvent.from_dict(item)
            for item in _records(_read_json(events_file), "events")
        ]
        timed = (
            [TimedDecision.from_dict(item) for item in _records(_read_json(decisions), "decisions")]
            if decisions
            else []
        )
        snapshots = (
            [
                ComplianceSnapshot.from_dict(item)
                for item in _records(_read_json(compliance), "compliance")
            ]
            if compliance
            else []
        )
    except (ValueError, OSError) as e:
        _fail(e)

    aggregator = RiskAnalyticsAggregator(config.slo_targets, config.max_period_days)
    summary = aggregator.aggregate(events, timed, window, snapshots)
    _output_result(summary, format, output)


# =============================================================================
# Setup
# =============================================================================


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_obj
def init(config: Config, path: str, force: bool) -> None:
    """Write a configuration file with the effective settings to PATH."""
    config_path = Path(path) / CONFIG_FILENAMES[0]
    if config_path.exists() and not force:
        console.print(f"[yellow]{config_path} already exists (use --force to overwrite)[/yellow]")
        sys.exit(1)

    write_config(config, config_path)
    console.print(f"[green]Configuration written to {config_path}[/green]")


@main.command()
def version() -> None:
    """Show version information."""
    click.echo(f"sbomhub version {__version__}")


if __name__ == "__main__":
    main()
