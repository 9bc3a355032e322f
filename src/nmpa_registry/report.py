"""Plain-text reports for import outcomes, statistics and the field mapping.

Templates live in ``templates/`` next to this module and are rendered with
Jinja2, so the CLI output can be restyled without touching the pipeline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import BatchOutcome, ClearOutcome, ReimportOutcome

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class ReportRenderer:
    """Render pipeline results as text."""

    def __init__(self, template_dir: Optional[Union[str, Path]] = None, max_reasons: int = 20) -> None:
        self.template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
        self.max_reasons = max_reasons
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_batch(self, outcome: BatchOutcome, title: str = "Import summary") -> str:
        template = self.jinja_env.get_template("batch_outcome.txt.j2")
        return template.render(outcome=outcome, title=title, max_reasons=self.max_reasons)

    def render_clear(self, outcome: ClearOutcome) -> str:
        status = "OK" if outcome.success else "FAILED"
        return f"Clear: {status} - {outcome.message} (deleted {outcome.deleted_count})\n"

    def render_reimport(self, outcome: ReimportOutcome) -> str:
        parts = []
        if outcome.clear is not None:
            parts.append(self.render_clear(outcome.clear))
        if outcome.batch is not None:
            parts.append(self.render_batch(outcome.batch, title="Reimport summary"))
        parts.append(f"Result: {outcome.message}\n")
        return "\n".join(parts)

    def render_statistics(self, stats: Dict[str, Any]) -> str:
        template = self.jinja_env.get_template("statistics.txt.j2")
        return template.render(stats=stats)

    def render_field_mapping(self, mapping: Dict[str, str]) -> str:
        template = self.jinja_env.get_template("field_mapping.txt.j2")
        return template.render(mapping=mapping)
