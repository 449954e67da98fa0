from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .collector import LicenseCollection, LicenseSummaryRow
from .config import get_settings
from .policy import LicensePolicy

SUMMARY_TITLES = ["Policy", "Type", "ID/Name/Expression", "Component(s)", "Package URL (pURL)"]
POLICY_TITLES = ["Policy", "Family", "SPDX ID", "Name", "Notes"]
POLICY_CSV_TITLES = ["Policy", "Family", "SPDX ID", "Name", "Annotations", "Notes"]


def truncate(value: str, max_length: int) -> str:
    return value[:max_length] if len(value) > max_length else value


def _render_table(titles: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    body = [list(titles), ["-" * len(title) for title in titles]]
    body.extend(list(row) for row in rows)
    widths = [max(len(line[col]) for line in body) for col in range(len(titles))]
    lines = [
        "  ".join(cell.ljust(widths[col]) for col, cell in enumerate(line)).rstrip()
        for line in body
    ]
    return "\n".join(lines) + "\n"


def _render_csv(titles: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(titles)
    writer.writerows(rows)
    return buffer.getvalue()


def _summary_cells(row: LicenseSummaryRow) -> List[str]:
    return [row.policy, row.type, row.key, row.component, row.purl]


def render_summary_text(rows: Iterable[LicenseSummaryRow]) -> str:
    return _render_table(SUMMARY_TITLES, (_summary_cells(row) for row in rows))


def render_summary_csv(rows: Iterable[LicenseSummaryRow]) -> str:
    return _render_csv(SUMMARY_TITLES, (_summary_cells(row) for row in rows))


def render_summary_json(rows: Iterable[LicenseSummaryRow]) -> str:
    payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "licenses": [asdict(row) for row in rows],
    }
    return json.dumps(payload, indent=2) + "\n"


def render_summary_html(rows: List[LicenseSummaryRow], title: Optional[str] = None) -> str:
    settings = get_settings()
    env = Environment(
        loader=FileSystemLoader(settings.templates_dir),
        autoescape=select_autoescape(["html", "xml"]),
    )
    template = env.get_template("license_summary.html.j2")
    return template.render(
        title=title or "License summary",
        rows=rows,
        generated=datetime.now(timezone.utc),
    )


def render_license_list_json(collection: LicenseCollection) -> str:
    """One JSON object per declared license, in grouping order."""
    lines = []
    for record in collection.records():
        choice = {
            field: value
            for field, value in (
                ("id", record.choice.id),
                ("name", record.choice.name),
                ("expression", record.choice.expression),
            )
            if value
        }
        lines.append(
            json.dumps(
                {
                    "type": record.choice_type,
                    "license": choice,
                    "component": record.component_name,
                    "purl": record.component_purl,
                }
            )
        )
    return "\n".join(lines) + ("\n" if lines else "")


def render_policies_text(policies: Iterable[LicensePolicy]) -> str:
    rows = (
        [
            policy.usage_policy,
            truncate(policy.family, 16),
            policy.id,
            truncate(policy.name, 16),
            truncate(", ".join(policy.notes), 32),
        ]
        for policy in policies
    )
    return _render_table(POLICY_TITLES, rows)


def render_policies_csv(policies: Iterable[LicensePolicy]) -> str:
    rows = (
        [
            policy.usage_policy,
            policy.family,
            policy.id,
            policy.name,
            ", ".join(policy.annotation_refs),
            ", ".join(policy.notes),
        ]
        for policy in policies
    )
    return _render_csv(POLICY_CSV_TITLES, rows)
