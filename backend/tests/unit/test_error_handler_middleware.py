"""Unit tests for error handler middleware."""

import json
from unittest.mock import Mock, patch

import pytest
from fastapi import Request, Response

from shiftwise.middleware.error_handler import ErrorHandlerMiddleware
from shiftwise.utils.logging_utils import redact_user_id

USER_ID = "5f0c8a52-0c3e-4c1a-9a43-3b0f7b2d9e11"


@pytest.mark.unit
class TestErrorHandlerMiddleware:
    """Test error handler middleware."""

    @pytest.fixture
    def middleware(self):
        return ErrorHandlerMiddleware(Mock())

    @pytest.fixture
    def mock_request(self):
        request = Mock(spec=Request)
        request.method = "POST"
        request.url = Mock()
        request.url.path = "/api/v1/migration/auth-events"
        request.query_params = {"userId": USER_ID}
        return request

    @pytest.fixture
    def call_next_error(self):
        async def call_next(request):
            raise ValueError("Test error")

        return call_next

    @pytest.mark.asyncio
    async def test_passes_through_successful_requests(self, middleware, mock_request):
        async def call_next(request):
            response = Mock(spec=Response)
            response.status_code = 200
            return response

        response = await middleware.dispatch(mock_request, call_next)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_catches_exceptions(self, middleware, mock_request, call_next_error):
        response = await middleware.dispatch(mock_request, call_next_error)

        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_hides_details_outside_debug(self, middleware, mock_request, call_next_error):
        with patch("shiftwise.middleware.error_handler.settings") as mock_settings:
            mock_settings.DEBUG = False
            response = await middleware.dispatch(mock_request, call_next_error)

        body = json.loads(response.body)
        assert body["error"] == "Internal server error"
        assert "Test error" not in response.body.decode()

    @pytest.mark.asyncio
    async def test_debug_includes_error_type(self, middleware, mock_request, call_next_error):
        with patch("shiftwise.middleware.error_handler.settings") as mock_settings:
            mock_settings.DEBUG = True
            response = await middleware.dispatch(mock_request, call_next_error)

        body = json.loads(response.body)
        assert body["type"] == "ValueError"
        assert body["error"] == "Test error"

    @pytest.mark.asyncio
    async def test_logs_redacted_user_id(self, middleware, mock_request, call_next_error):
        with patch("shiftwise.middleware.error_handler.logger") as mock_logger:
            await middleware.dispatch(mock_request, call_next_error)

        message = mock_logger.error.call_args.args[0]
        assert redact_user_id(USER_ID) in message
        assert USER_ID not in message
