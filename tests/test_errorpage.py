import json

import pytest

from gortex.errorpage import (
    DevErrorPageConfig,
    ErrorInfo,
    build_error_info,
    generate_solutions,
    get_stack_trace,
    render_error_page,
)

REQUEST_DETAILS = {
    "method": "POST",
    "url": "/test?param=value",
    "remote_addr": "192.0.2.1:1234",
    "user_agent": "Test-Agent",
    "referer": "",
}
HEADERS = {"User-Agent": ["Test-Agent"], "Authorization": ["Bearer token"]}


def _raised(error):
    try:
        raise error
    except Exception as exc:
        return exc


def test_html_page_with_stack_trace():
    info = build_error_info(
        _raised(RuntimeError("test error")), DevErrorPageConfig(), REQUEST_DETAILS, HEADERS
    )
    body = render_error_page(info)
    assert "Gortex Error" in body
    assert "Stack Trace" in body
    assert "500" in body
    assert "test error" in body


def test_html_page_without_stack_trace():
    config = DevErrorPageConfig(show_stack_trace=False, show_request_details=True)
    info = build_error_info(RuntimeError("test error"), config, REQUEST_DETAILS, HEADERS)
    body = render_error_page(info)
    assert "Gortex Error" in body
    assert "Stack Trace" not in body
    assert info.stack_trace == ""


def test_panic_value_is_reported_as_panic():
    info = build_error_info("test panic", DevErrorPageConfig())
    assert info.type == "panic"
    assert info.message == "test panic"
    assert info.solutions[0] == "Check for nil pointer dereference"
    assert "Gortex Error" in render_error_page(info)


def test_panic_with_error_value():
    info = build_error_info(ValueError("panic error"), DevErrorPageConfig())
    assert info.type == "ValueError"
    assert info.message == "panic error"


def test_extract_error_info():
    config = DevErrorPageConfig()
    info = build_error_info(RuntimeError("test error"), config, REQUEST_DETAILS, HEADERS)
    assert info.message == "test error"
    assert info.status == 500
    assert info.status_text == "Internal Server Error"
    assert info.request_details["method"] == "POST"
    assert "/test?param=value" in info.request_details["url"]
    assert len(info.headers) > 0
    assert info.stack_trace != ""


def test_request_details_hidden_when_disabled():
    config = DevErrorPageConfig(show_request_details=False)
    info = build_error_info(RuntimeError("x"), config, REQUEST_DETAILS, HEADERS)
    assert info.request_details is None
    assert info.headers is None
    body = render_error_page(info)
    assert "Request Information" not in body
    assert "Request Headers" not in body


def test_request_details_and_headers_rendered():
    info = build_error_info(RuntimeError("x"), DevErrorPageConfig(), REQUEST_DETAILS, HEADERS)
    body = render_error_page(info)
    assert "Request Information" in body
    assert "Test-Agent" in body
    assert "Authorization" in body


def test_message_is_escaped():
    info = build_error_info(RuntimeError("<script>alert(1)</script>"), DevErrorPageConfig())
    body = render_error_page(info)
    assert "<script>alert(1)</script>" not in body
    assert "&lt;script&gt;" in body


def test_to_dict_is_json_serialisable():
    info = build_error_info(RuntimeError("test error"), DevErrorPageConfig(), REQUEST_DETAILS, HEADERS)
    data = json.loads(json.dumps(info.to_dict()))
    assert data["message"] == "test error"
    assert data["status"] == 500
    assert data["request_details"]["method"] == "POST"
    assert data["headers"]["Authorization"] == ["Bearer token"]
    assert set(data) == {
        "status",
        "status_text",
        "message",
        "type",
        "stack_trace",
        "request_details",
        "headers",
        "solutions",
        "docs_link",
    }


@pytest.mark.parametrize(
    "message, first",
    [
        ("dial tcp: Connection Refused", "Check if the target service is running"),
        ("open x: no such file or directory", "Verify the file path is correct"),
        ("permission denied", "Check file/directory permissions"),
        ("listen tcp :80: bind: address already in use", "Another process is using this port"),
        ("runtime panic", "Check for nil pointer dereference"),
        ("Validation failed", "Check input data format"),
        ("context deadline exceeded", "Increase timeout value"),
        ("something odd", "Check the error message for specific details"),
    ],
)
def test_generate_solutions(message, first):
    solutions = generate_solutions(message)
    assert len(solutions) == 3
    assert solutions[0] == first


def test_stack_trace_is_truncated():
    trace = get_stack_trace(1)
    lines = trace.split("\n")
    assert lines[-1] == "... (truncated)"
    assert len(lines) == 3


def test_stack_trace_limit_zero_uses_default():
    config = DevErrorPageConfig(stack_trace_limit=0)
    info = build_error_info("boom", config)
    assert len(info.stack_trace.split("\n")) <= 21
    assert info.stack_trace != ""


def test_default_error_info_fields():
    info = ErrorInfo(message="m", type="t")
    assert info.status == 500
    assert info.solutions == []
    assert info.to_dict()["request_details"] is None