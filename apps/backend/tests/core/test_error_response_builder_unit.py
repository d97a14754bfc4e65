import json

from core.error_handler import _build_error_response


def test_build_error_response_production_hides_optional_fields():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="ai_error",
        message="All models failed.",
        environment="production",
        error_code="all_models_failed",
        details={"debug": True},
        traceback_str="trace",
        exception_type="AllModelsFailedError",
        validation_errors={"x": 1},
        status_code=502,
    )
    # The JSONResponse produced here stores the rendered bytes in `body`
    body = json.loads(resp.body)

    assert resp.status_code == 502
    # In production only correlation_id, type and error_code survive
    assert body["error"] == {
        "correlation_id": "cid",
        "type": "ai_error",
        "error_code": "all_models_failed",
    }
    assert body["message"] == "All models failed."
    assert body["success"] is False


def test_build_error_response_development_includes_optional_fields():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="internal_server_error",
        message="An internal error occurred",
        environment="development",
        details={"debug": True},
        traceback_str="trace",
        exception_type="ValueError",
        validation_errors={"x": 1},
        status_code=500,
    )
    # Read rendered body bytes directly (Starlette/fastapi versions differ)
    body = json.loads(resp.body)

    assert resp.status_code == 500
    # Development environment exposes additional fields
    assert body["error"]["details"] == {"debug": True}
    assert "traceback" in body["error"]
    assert body["error"]["exception_type"] == "ValueError"
    assert body["error"]["validation_errors"] == {"x": 1}


def test_build_error_response_skips_empty_values():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="validation_error",
        message="Invalid request data provided",
        environment="development",
        details={},
        traceback_str="",
        status_code=422,
    )
    body = json.loads(resp.body)

    assert set(body["error"]) == {"correlation_id", "type"}
