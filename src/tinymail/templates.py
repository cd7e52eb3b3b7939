"""
Message body rendering with Jinja2.
"""

import os
from collections.abc import Mapping
from typing import Any, Optional, Union

import jinja2

from .errors import TemplateError


__all__ = ("render_template_files", "render_template_string")


def _create_environment(
    loader: Optional[jinja2.BaseLoader] = None,
) -> jinja2.Environment:
    return jinja2.Environment(
        loader=loader,
        autoescape=True,
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
    )


def _template_context(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)

    try:
        return dict(vars(data))
    except TypeError as exc:
        raise TemplateError(
            f"Template data must be a mapping or an object, not {type(data).__name__}"
        ) from exc


def _render(template: jinja2.Template, data: Any) -> str:
    context = _template_context(data)
    try:
        return template.render(context)
    except Exception as exc:
        raise TemplateError(
            f"Error rendering template {template.name!r}: {exc}"
        ) from exc


def render_template_string(data: Any, source: str, /) -> str:
    """
    Render a template source string with ``data``, a mapping of variables or
    an object whose attributes are the variables.

    :raises TemplateError: on syntax or render errors, including undefined
        variables
    """
    environment = _create_environment()
    try:
        template = environment.from_string(source)
    except jinja2.TemplateError as exc:
        raise TemplateError(f"Error parsing template: {exc}") from exc

    return _render(template, data)


def render_template_files(
    data: Any, *paths: Union[str, os.PathLike[str]]
) -> str:
    """
    Render the template in the first of ``paths`` with ``data``.

    Every file is registered under its basename, so the first template can
    ``{% include %}`` or ``{% extends %}`` the others by name.

    :raises TemplateError: no paths given, a file could not be read, or on
        syntax or render errors
    """
    if not paths:
        raise TemplateError("No template files given")

    sources: dict[str, str] = {}
    for path in paths:
        try:
            with open(path, encoding="utf-8", newline="") as template_file:
                sources[os.path.basename(path)] = template_file.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateError(
                f"Error reading template {os.fspath(path)!r}: {exc}"
            ) from exc

    environment = _create_environment(jinja2.DictLoader(sources))
    try:
        template = environment.get_template(os.path.basename(paths[0]))
    except jinja2.TemplateError as exc:
        raise TemplateError(f"Error parsing template: {exc}") from exc

    return _render(template, data)
