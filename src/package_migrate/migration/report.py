"""Rendering of migration reports for the console, files and CI."""

import json
import os
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from ..models.package import Package, PackageKind
from ..models.result import AggregateReport, RunOutcome


def render_summary_table(report: AggregateReport) -> Table:
    """Per-package results as a rich table."""
    references = report.reference_totals() is not None

    table = Table(title=f'{report.kind.value.upper()} Package Migration')
    table.add_column('Package', style='cyan')
    table.add_column('Succeeded', style='green')
    table.add_column('Failed', style='red')
    if references:
        table.add_column('Digests', style='blue')
        table.add_column('Tags', style='blue')
    table.add_column('Status', style='yellow')

    for result in report.results:
        if result.skipped:
            status = f'SKIPPED ({result.reason})'
        elif result.failed:
            status = 'FAILED' if not result.succeeded else 'PARTIAL'
        else:
            status = 'OK'

        row = [result.package, str(result.succeeded), str(result.failed)]
        if references:
            digests_total = (result.digests_succeeded or 0) + (result.digests_failed or 0)
            tags_total = (result.tags_succeeded or 0) + (result.tags_failed or 0)
            row.extend(
                [
                    f'{result.digests_succeeded or 0}/{digests_total}',
                    f'{result.tags_succeeded or 0}/{tags_total}',
                ]
            )
        row.append(status)
        table.add_row(*row)

    return table


def render_statistics_table(report: AggregateReport) -> Table:
    table = Table(title='Statistics')
    table.add_column('Statistic', style='cyan')
    table.add_column('Count', style='green')
    for name, value in report.statistics():
        table.add_row(name, str(value))
    return table


def print_report(report: AggregateReport, console: Console) -> None:
    """Print the human-readable summary."""
    if report.outcome == RunOutcome.NOTHING_TO_DO:
        console.print(f'[yellow]{report.text_summary()}[/yellow]')
        return

    console.print(render_summary_table(report))
    console.print(render_statistics_table(report))

    if report.outcome == RunOutcome.HARD_FAILURE:
        console.print(f'[red]✗[/red] All {report.kind.value} package migrations failed')
    elif report.outcome == RunOutcome.PARTIAL_FAILURE:
        console.print(
            f'[yellow]![/yellow] Some {report.kind.value} package migrations failed'
        )
    else:
        console.print(f'[green]✓[/green] {report.kind.value} migration completed successfully')


def write_results(report: AggregateReport, output_path: str) -> None:
    """Write the machine-readable result list as JSON."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report.to_output(), f, indent=2)


def markdown_summary(report: AggregateReport) -> str:
    """Markdown summary for a CI job page."""
    lines = [
        f'## {report.kind.value.upper()} Package Migration',
        '',
        'Migration completed.',
        '',
        '| Statistics | Count |',
        '| --- | --- |',
    ]
    lines.extend(f'| {name} | {value} |' for name, value in report.statistics())
    lines.extend(['', '### Per-Package Results:', ''])
    lines.extend(f'- {result.summary_line()}' for result in report.results)
    return '\n'.join(lines) + '\n'


def write_github_outputs(report: AggregateReport, environ: Optional[dict] = None) -> bool:
    """Publish results as GitHub Actions step outputs and job summary.

    Does nothing outside of GitHub Actions.

    Returns:
        True if anything was written
    """
    environ = os.environ if environ is None else environ
    written = False

    output_file = environ.get('GITHUB_OUTPUT')
    if output_file:
        delimiter = f'EOF_{uuid.uuid4().hex}'
        with open(output_file, 'a', encoding='utf-8') as f:
            f.write(f'result={json.dumps(report.to_output())}\n')
            f.write(f'result-summary<<{delimiter}\n{report.text_summary()}\n{delimiter}\n')
        written = True

    summary_file = environ.get('GITHUB_STEP_SUMMARY')
    if summary_file and report.results:
        with open(summary_file, 'a', encoding='utf-8') as f:
            f.write(markdown_summary(report))
        written = True

    return written


def discovery_payload(packages_by_kind: Dict[PackageKind, List[Package]]) -> Dict[str, list]:
    """Discovered packages keyed by kind, in the migrate commands' input shape."""
    return {
        kind.value: [package.to_payload() for package in packages]
        for kind, packages in packages_by_kind.items()
    }


def write_discovery_outputs(
    packages_by_kind: Dict[PackageKind, List[Package]], environ: Optional[dict] = None
) -> bool:
    """Publish discovered packages as GitHub Actions step outputs.

    Writes ``<kind>-packages`` and ``<kind>-count`` per kind, plus
    ``all-packages`` and ``total-count``.

    Returns:
        True if outputs were written
    """
    environ = os.environ if environ is None else environ
    output_file = environ.get('GITHUB_OUTPUT')
    if not output_file:
        return False

    payload = discovery_payload(packages_by_kind)
    total = sum(len(packages) for packages in payload.values())

    with open(output_file, 'a', encoding='utf-8') as f:
        for kind, packages in payload.items():
            f.write(f'{kind}-packages={json.dumps(packages)}\n')
            f.write(f'{kind}-count={len(packages)}\n')
        f.write(f'all-packages={json.dumps(payload)}\n')
        f.write(f'total-count={total}\n')

    return True
