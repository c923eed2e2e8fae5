"""Rendering of validation and audit reports.

Reports are produced in four formats: ``json`` (the Pydantic model dump),
and ``markdown``, ``html`` and ``text`` rendered from small inline Jinja2
templates.
"""

from __future__ import annotations

from typing import Any

from jinja2 import Environment
from pydantic import BaseModel

from projgen.config import REPORT_FORMATS

_env = Environment(
    autoescape=False,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)
_html_env = Environment(
    autoescape=True,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


class UnsupportedFormatError(ValueError):
    """The requested report format is not one of ``REPORT_FORMATS``."""

    def __init__(self, fmt: str) -> None:
        self.format = fmt
        super().__init__(
            f"unsupported report format: {fmt} (expected one of {', '.join(REPORT_FORMATS)})"
        )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_TEMPLATES: dict[str, dict[str, str]] = {
    "validation": {
        "markdown": """\
# Validation Report

- **Project:** `{{ r.project_path }}`
- **Valid:** {{ "yes" if r.valid else "no" }}
- **Errors:** {{ r.error_count }} | **Warnings:** {{ r.warning_count }} | **Fixable:** {{ r.fixable_count }}

{% if r.issues %}
| Severity | Rule | File | Message | Fixable |
|----------|------|------|---------|---------|
{% for i in r.issues %}
| {{ i.severity }} | {{ i.rule }} | {{ i.file }}{% if i.line %}:{{ i.line }}{% endif %} | {{ i.message }} | {{ "yes" if i.fixable else "no" }} |
{% endfor %}
{% else %}
No issues found.
{% endif %}
""",
        "text": """\
Validation report for {{ r.project_path }}
Valid: {{ "yes" if r.valid else "no" }} ({{ r.error_count }} errors, {{ r.warning_count }} warnings, {{ r.fixable_count }} fixable)
{% for i in r.issues %}
[{{ i.severity | upper }}] {{ i.rule }} {{ i.file }}{% if i.line %}:{{ i.line }}{% endif %} - {{ i.message }}
{% endfor %}
""",
        "html": """\
<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Validation Report</title></head>
<body>
<h1>Validation Report</h1>
<p>Project: <code>{{ r.project_path }}</code></p>
<p>Valid: {{ "yes" if r.valid else "no" }} ({{ r.error_count }} errors, {{ r.warning_count }} warnings)</p>
<table>
<tr><th>Severity</th><th>Rule</th><th>File</th><th>Message</th></tr>
{% for i in r.issues %}
<tr><td>{{ i.severity }}</td><td>{{ i.rule }}</td><td>{{ i.file }}</td><td>{{ i.message }}</td></tr>
{% endfor %}
</table>
</body></html>
""",
    },
    "audit": {
        "markdown": """\
# Audit Report

- **Project:** `{{ r.project_path }}`
- **Overall score:** {{ r.overall_score }}/100 ({{ "passed" if r.passed else "failed" }})

{{ r.summary }}

{% for name, c in r.categories.items() %}
## {{ name | capitalize }} ({{ c.score }}/100)

{% for f in c.findings %}
- **{{ f.severity }}** `{{ f.rule }}` {{ f.file }}{% if f.line %}:{{ f.line }}{% endif %}: {{ f.description }}{% if f.suggestion %} _({{ f.suggestion }})_{% endif %}

{% else %}
No findings.
{% endfor %}

{% endfor %}
""",
        "text": """\
Audit report for {{ r.project_path }}
Overall score: {{ r.overall_score }}/100 ({{ "PASSED" if r.passed else "FAILED" }})
{% for name, c in r.categories.items() %}
{{ name }}: {{ c.score }}/100
{% for f in c.findings %}
  [{{ f.severity | upper }}] {{ f.rule }} {{ f.file }}{% if f.line %}:{{ f.line }}{% endif %} - {{ f.description }}
{% endfor %}
{% endfor %}
""",
        "html": """\
<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Audit Report</title></head>
<body>
<h1>Audit Report</h1>
<p>Project: <code>{{ r.project_path }}</code></p>
<p>Overall score: {{ r.overall_score }}/100 ({{ "passed" if r.passed else "failed" }})</p>
{% for name, c in r.categories.items() %}
<h2>{{ name }} ({{ c.score }}/100)</h2>
<ul>
{% for f in c.findings %}
<li><strong>{{ f.severity }}</strong> {{ f.rule }} {{ f.file }}: {{ f.description }}</li>
{% endfor %}
</ul>
{% endfor %}
</body></html>
""",
    },
}


def render_report(kind: str, result: BaseModel, fmt: str) -> bytes:
    """Render *result* as a ``kind`` report ("validation" or "audit") in *fmt*."""
    if fmt not in REPORT_FORMATS:
        raise UnsupportedFormatError(fmt)
    if fmt == "json":
        return result.model_dump_json(indent=2).encode("utf-8")

    env = _html_env if fmt == "html" else _env
    context: dict[str, Any] = {"r": result}
    return env.from_string(_TEMPLATES[kind][fmt]).render(**context).encode("utf-8")
