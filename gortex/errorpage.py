"""Detailed error pages for use during development."""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Mapping, Optional, Sequence

from jinja2 import Environment, TemplateError

DEFAULT_STACK_TRACE_LIMIT = 10
DEFAULT_DOCS_LINK = "README.md"
_TRUNCATED = "... (truncated)"


@dataclass
class DevErrorPageConfig:
    """What the development error page shows."""

    show_stack_trace: bool = True
    show_request_details: bool = True
    stack_trace_limit: int = DEFAULT_STACK_TRACE_LIMIT
    docs_link: str = DEFAULT_DOCS_LINK


@dataclass
class ErrorInfo:
    """Everything known about a failed request."""

    message: str
    type: str
    status: int = int(HTTPStatus.INTERNAL_SERVER_ERROR)
    status_text: str = HTTPStatus.INTERNAL_SERVER_ERROR.phrase
    stack_trace: str = ""
    request_details: Optional[dict[str, str]] = None
    headers: Optional[dict[str, list[str]]] = None
    solutions: list[str] = field(default_factory=list)
    docs_link: str = DEFAULT_DOCS_LINK

    def to_dict(self) -> dict[str, Any]:
        """Return the info as a JSON-ready dictionary."""
        return {
            "status": self.status,
            "status_text": self.status_text,
            "message": self.message,
            "type": self.type,
            "stack_trace": self.stack_trace,
            "request_details": (
                dict(self.request_details) if self.request_details is not None else None
            ),
            "headers": (
                {name: list(values) for name, values in self.headers.items()}
                if self.headers is not None
                else None
            ),
            "solutions": list(self.solutions),
            "docs_link": self.docs_link,
        }


_SOLUTIONS: tuple[tuple[str, tuple[str, str, str]], ...] = (
    (
        "connection refused",
        (
            "Check if the target service is running",
            "Verify the host and port configuration",
            "Check firewall settings",
        ),
    ),
    (
        "no such file or directory",
        (
            "Verify the file path is correct",
            "Check file permissions",
            "Ensure the file exists",
        ),
    ),
    (
        "permission denied",
        (
            "Check file/directory permissions",
            "Run with appropriate user privileges",
            "Verify ownership of the resource",
        ),
    ),
    (
        "bind: address already in use",
        (
            "Another process is using this port",
            "Use a different port number",
            "Stop the conflicting process",
        ),
    ),
    (
        "panic",
        (
            "Check for nil pointer dereference",
            "Verify array/slice bounds",
            "Add proper error handling",
        ),
    ),
    (
        "validation",
        (
            "Check input data format",
            "Verify required fields are present",
            "Review validation rules",
        ),
    ),
    (
        "context deadline exceeded",
        (
            "Increase timeout value",
            "Check network connectivity",
            "Optimize slow operations",
        ),
    ),
)

_DEFAULT_SOLUTIONS = (
    "Check the error message for specific details",
    "Review the stack trace for the error location",
    "Consult the Gortex documentation",
)


def generate_solutions(message: str) -> list[str]:
    """Suggest fixes for an error message, matched case-insensitively."""
    lowered = message.lower()
    for needle, solutions in _SOLUTIONS:
        if needle in lowered:
            return list(solutions)
    return list(_DEFAULT_SOLUTIONS)


def _truncate(trace: str, limit: int) -> str:
    lines = trace.split("\n")
    if len(lines) > limit * 2:
        lines = lines[: limit * 2] + [_TRUNCATED]
    return "\n".join(lines)


def get_stack_trace(limit: int) -> str:
    """Return the caller's stack, cut to about ``limit`` frames."""
    return _truncate("".join(traceback.format_stack()[:-1]), limit)


def _type_name(error: BaseException) -> str:
    cls = type(error)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def build_error_info(
    error: Any,
    config: Optional[DevErrorPageConfig] = None,
    request_details: Optional[Mapping[str, str]] = None,
    headers: Optional[Mapping[str, Sequence[str]]] = None,
) -> ErrorInfo:
    """Collect details about ``error``; a non-exception value counts as a panic."""
    if config is None:
        config = DevErrorPageConfig()
    limit = config.stack_trace_limit or DEFAULT_STACK_TRACE_LIMIT

    if isinstance(error, BaseException):
        message = str(error)
        type_name = _type_name(error)
    else:
        message = str(error)
        type_name = "panic"

    info = ErrorInfo(message=message, type=type_name, docs_link=config.docs_link)

    if config.show_stack_trace:
        if isinstance(error, BaseException) and error.__traceback__ is not None:
            trace = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            info.stack_trace = _truncate(trace, limit)
        else:
            info.stack_trace = get_stack_trace(limit)

    if config.show_request_details:
        info.request_details = dict(request_details or {})
        info.headers = {
            name: list(values) for name, values in (headers or {}).items()
        }

    info.solutions = generate_solutions(message)
    return info


_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<title>Gortex Error - {{ info.message }}</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
<style>
:root { --bg: #f8f9fa; --panel: #ffffff; --text: #212529; --accent: #dc3545;
        --msg-bg: #f8d7da; --msg-fg: #721c24; --code-bg: #f8f9fa; --border: #dee2e6;
        --note-bg: #fff3cd; --note-fg: #856404; --tip-bg: #d1ecf1; --tip-fg: #0c5460; }
@media (prefers-color-scheme: dark) {
  :root { --bg: #1a1a1a; --panel: #2d2d2d; --text: #e9ecef; --msg-bg: #432424;
          --msg-fg: #f8d7da; --code-bg: #1e1e1e; --border: #404040;
          --note-bg: #664d03; --note-fg: #fff3cd; --tip-bg: #0c4a56; --tip-fg: #b8daff; }
}
body { font-family: system-ui, sans-serif; margin: 0; background: var(--bg);
       color: var(--text); line-height: 1.6; }
.container { max-width: 1200px; margin: 0 auto; padding: 20px; }
.header { background: var(--accent); color: #fff; padding: 40px; text-align: center;
          border-radius: 12px 12px 0 0; }
.header h1 { margin: 0; font-size: 64px; font-weight: 300; }
.header p { margin: 15px 0 0; font-size: 24px; }
.content { background: var(--panel); padding: 40px; border-radius: 0 0 12px 12px; }
.note { background: var(--note-bg); color: var(--note-fg); padding: 20px;
        border-radius: 8px; margin-bottom: 30px; }
.message { background: var(--msg-bg); color: var(--msg-fg); padding: 20px;
           border-left: 4px solid var(--accent); font-family: monospace;
           margin-bottom: 30px; word-break: break-word; }
.section { margin-bottom: 35px; }
.section h2 { border-bottom: 2px solid var(--border); padding-bottom: 8px; }
.tips { background: var(--tip-bg); color: var(--tip-fg); padding: 20px; border-radius: 8px; }
table { width: 100%; border-collapse: collapse; }
td { padding: 8px 12px; border-bottom: 1px solid var(--border); vertical-align: top; }
td:first-child { font-weight: 600; width: 180px; background: var(--code-bg); }
.trace { background: var(--code-bg); padding: 20px; white-space: pre; overflow-x: auto;
         font-family: monospace; font-size: 13px; border: 1px solid var(--border); }
.docs { text-align: center; margin-top: 30px; border-top: 1px solid var(--border); }
</style>
</head>
<body>
<div class="container">
<div class="header">
<h1>{{ info.status }}</h1>
<p>{{ info.status_text }}</p>
</div>
<div class="content">
<div class="note"><strong>Development Mode:</strong> this detailed page is shown only
during development; production users see a generic message.</div>
<div class="message">{{ info.message }}</div>
{% if info.solutions %}
<div class="section"><div class="tips">
<h3>Possible Solutions</h3>
<ul>
{% for solution in info.solutions %}<li>{{ solution }}</li>
{% endfor %}
</ul>
</div></div>
{% endif %}
{% if info.request_details %}
<div class="section">
<h2>Request Information</h2>
<table>
{% for key, value in info.request_details|dictsort %}<tr><td>{{ key }}</td><td>{{ value }}</td></tr>
{% endfor %}
</table>
</div>
{% endif %}
{% if info.headers %}
<div class="section">
<h2>Request Headers</h2>
<table>
{% for name, values in info.headers|dictsort %}{% for value in values %}<tr><td>{{ name }}</td><td>{{ value }}</td></tr>
{% endfor %}{% endfor %}
</table>
</div>
{% endif %}
{% if info.stack_trace %}
<div class="section">
<h2>Stack Trace</h2>
<div class="trace">{{ info.stack_trace }}</div>
</div>
{% endif %}
<div class="docs"><p>Need help? Read the
<a href="{{ info.docs_link }}" target="_blank">Gortex Documentation</a></p></div>
</div>
</div>
</body>
</html>
"""

_ENVIRONMENT = Environment(autoescape=True)


def render_error_page(info: ErrorInfo) -> str:
    """Render ``info`` as an HTML page, or as plain text if rendering fails."""
    try:
        template = _ENVIRONMENT.from_string(_TEMPLATE)
        return template.render(info=info)
    except TemplateError:
        return f"Error: {info.message}"