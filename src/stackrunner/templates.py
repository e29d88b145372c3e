"""Builds deployment units from template files and stack names."""

import dataclasses
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from stackrunner.errors import TemplateError
from stackrunner.models import DeploymentUnit

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9-]+")


def stack_name_from_path(path: Path) -> str:
    """Derive a valid CloudFormation stack name from a template file name."""
    name = _INVALID_NAME_CHARS.sub("-", path.stem).strip("-")
    if not name or not name[0].isalpha():
        name = f"stack-{name}".rstrip("-")
    return name


def parse_key_values(pairs: Iterable[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings into a dict."""
    result = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        result[key] = value
    return result


def load_units(
    paths: Iterable[str | Path],
    stack_name: str | None = None,
    parameters: dict[str, str] | None = None,
    capabilities: Iterable[str] = (),
    tags: dict[str, str] | None = None,
) -> Iterator[DeploymentUnit]:
    """Return an iterator of one unit per template.

    Units only carry the template path. See ``read_template``.
    """
    paths = [Path(p) for p in paths]
    if stack_name and len(paths) > 1:
        raise ValueError("An explicit stack name can only be used with a single template")
    return _build_units(paths, stack_name, dict(parameters or {}), tuple(capabilities), tags or {})


def _build_units(
    paths: list[Path],
    stack_name: str | None,
    parameters: dict[str, str],
    capabilities: tuple[str, ...],
    tags: dict[str, str],
) -> Iterator[DeploymentUnit]:
    for path in paths:
        yield DeploymentUnit(
            identifier=str(path),
            stack_name=stack_name or stack_name_from_path(path),
            template_path=str(path),
            parameters=dict(parameters),
            capabilities=capabilities,
            tags=dict(tags),
        )


def stack_units(stack_names: Iterable[str]) -> Iterator[DeploymentUnit]:
    """Yield template-less units, one per stack name."""
    for name in stack_names:
        yield DeploymentUnit(identifier=name, stack_name=name)


def read_template(unit: DeploymentUnit) -> DeploymentUnit:
    """Return ``unit`` with its template body filled in from ``template_path``.

    Units that already have a body, or have no path, are returned unchanged.
    """
    if unit.template_body is not None or unit.template_path is None:
        return unit
    try:
        body = Path(unit.template_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateError(unit.identifier, unit.stack_name, str(exc)) from exc
    return dataclasses.replace(unit, template_body=body)
