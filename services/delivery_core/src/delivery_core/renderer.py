"""Jinja2 rendering of template variables into payload content."""

from typing import Any

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from notify_shared.errors import DeliveryValidationError
from notify_shared.models import NotificationPayload

_text_env = SandboxedEnvironment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)
_html_env = SandboxedEnvironment(
    autoescape=True,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)


def render_template(
    template_str: str, context: dict[str, Any], *, html: bool = False
) -> str:
    """Render a Jinja2 template string with the given context.

    Uses SandboxedEnvironment to prevent SSTI and StrictUndefined
    to raise on missing variables.  Only HTML is autoescaped.
    """
    str_context = {k: str(v) for k, v in context.items()}
    env = _html_env if html else _text_env
    return env.from_string(template_str).render(str_context)


def render_payload(payload: NotificationPayload) -> NotificationPayload:
    """Return a copy with variables substituted into subject and bodies.

    Raises DeliveryValidationError when a template is malformed or
    references an undefined variable.
    """
    if not payload.variables:
        return payload
    variables = payload.variables
    try:
        update: dict[str, Any] = {"content": render_template(payload.content, variables)}
        if payload.subject:
            update["subject"] = render_template(payload.subject, variables)
        if payload.html_content:
            update["html_content"] = render_template(
                payload.html_content, variables, html=True
            )
    except TemplateError as exc:
        raise DeliveryValidationError(f"Template rendering failed: {exc}") from exc
    return payload.model_copy(update=update)
