from typing import Any

from prompt_client.configuration import ConfigValue
from prompt_client.errors import TemplateNotFoundError
from prompt_client.models import TemplateSpecification


def get_template_specification(template_id: str) -> TemplateSpecification | None:
    """Return the configured specification for `template_id`, or None if the template is not configured."""
    data: dict[str, Any] | None = ConfigValue(f"templates.{template_id}").resolve()
    if not isinstance(data, dict):
        return None
    return TemplateSpecification(template_id=template_id, **data)


def resolve_template_specification(template_id: str) -> TemplateSpecification:
    specification: TemplateSpecification | None = get_template_specification(template_id)
    if specification is None:
        raise TemplateNotFoundError(f"template {template_id} is not configured")
    return specification


def configured_templates() -> list[str]:
    return list((ConfigValue("templates").resolve() or {}).keys())
