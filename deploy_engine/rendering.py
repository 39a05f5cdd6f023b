"""Rendering of deployment templates from a service's template context."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, StrictUndefined


@dataclass
class RenderedFile:
    template: str
    path: Path


class TemplateRenderer:
    """Renders every ``*.j2`` file under a template directory.

    Output keeps the relative layout and drops the ``.j2`` suffix. Missing
    context keys are errors.
    """

    def __init__(self, template_dir: Path) -> None:
        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def template_names(self) -> List[str]:
        return [
            path.relative_to(self.template_dir).as_posix()
            for path in sorted(self.template_dir.rglob("*.j2"))
        ]

    def render_string(self, template_name: str, context: Dict[str, Any]) -> str:
        return self.env.get_template(template_name).render(**context)

    def render(self, context: Dict[str, Any], output_dir: Path) -> List[RenderedFile]:
        output_dir.mkdir(parents=True, exist_ok=True)
        rendered: List[RenderedFile] = []
        for name in self.template_names():
            target = output_dir / Path(name).with_suffix("")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.render_string(name, context))
            rendered.append(RenderedFile(template=name, path=target))
        return rendered
