"""Email template rendering.

Templates use `{{ name }}` placeholders; the dotted `{{ .name }}` form used
by existing EmailTemplates is accepted as well. Missing
variables render as empty strings; when a variable is declared more than once
the last value wins.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from jinja2 import Environment, TemplateSyntaxError, Undefined
from jinja2.exceptions import TemplateError

from .utils.errors import TemplateRenderError

_DOTTED_PLACEHOLDER = re.compile(r"\{\{(-?)\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*(-?)\}\}")

_text_env = Environment(undefined=Undefined, autoescape=False, keep_trailing_newline=True)
_html_env = Environment(undefined=Undefined, autoescape=True, keep_trailing_newline=True)


def variables_to_map(variables: Iterable[Mapping[str, Any]] | None) -> dict[str, str]:
    """Flatten `[{name, value}]` into a mapping. Later duplicates overwrite earlier ones."""
    result: dict[str, str] = {}
    for variable in variables or []:
        name = variable.get("name")
        if name:
            result[name] = "" if variable.get("value") is None else str(variable.get("value"))
    return result


def _normalize(source: str) -> str:
    return _DOTTED_PLACEHOLDER.sub(r"{{\1 \2 \3}}", source)


def _render(env: Environment, field: str, source: str | None, variables: Iterable[Mapping[str, Any]] | None) -> str:
    if not source:
        return ""
    try:
        template = env.from_string(_normalize(source))
        return template.render(variables_to_map(variables))
    except TemplateSyntaxError as e:
        raise TemplateRenderError(f"invalid {field} template at line {e.lineno}: {e.message}") from e
    except TemplateError as e:
        raise TemplateRenderError(f"failed to render {field} template: {e}") from e


def render_subject(variables: Iterable[Mapping[str, Any]] | None, template: Mapping[str, Any]) -> str:
    """Render the subject line; newlines are collapsed to keep the header valid."""
    subject = _render(_text_env, "subject", (template.get("spec") or {}).get("subject"), variables)
    return " ".join(subject.splitlines()).strip()


def render_html(variables: Iterable[Mapping[str, Any]] | None, template: Mapping[str, Any]) -> str:
    return _render(_html_env, "htmlBody", (template.get("spec") or {}).get("htmlBody"), variables)


def render_text(variables: Iterable[Mapping[str, Any]] | None, template: Mapping[str, Any]) -> str:
    return _render(_text_env, "textBody", (template.get("spec") or {}).get("textBody"), variables)
