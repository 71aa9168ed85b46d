import asyncio
from unittest.mock import MagicMock

from oas_graphql.http import HttpRequest, HttpResponse, RequestsClient, get_header, trim


class TestHelpers:
    def test_get_header_ignores_case(self):
        assert get_header({"Content-Type": "application/json"}, "content-type") == "application/json"
        assert get_header({}, "content-type") is None

    def test_response_header(self):
        assert HttpResponse(status_code=200, headers={"X-Rate": "5"}).header("x-rate") == "5"

    def test_trim(self):
        assert trim("short") == "short"
        assert trim("x" * 150) == "x" * 100 + "..."
        assert trim(None) == ""


class TestRequestsClient:
    def test_send(self):
        session = MagicMock()
        session.request.return_value = MagicMock(
            status_code=201, headers={"content-type": "application/json"}, text='{"id": 1}'
        )
        client = RequestsClient(session=session, timeout=5)

        response = asyncio.run(client.send(HttpRequest(
            method="post",
            url="http://example.api/items",
            headers={"content-type": "application/json"},
            query={"dry": "true"},
            body='{"name": "Box"}',
        )))

        session.request.assert_called_once_with(
            "POST",
            "http://example.api/items",
            params={"dry": "true"},
            headers={"content-type": "application/json"},
            data=b'{"name": "Box"}',
            timeout=5,
        )
        assert response.status_code == 201
        assert response.text == '{"id": 1}'
        assert response.header("Content-Type") == "application/json"

    def test_send_without_body(self):
        session = MagicMock()
        session.request.return_value = MagicMock(status_code=200, headers={}, text="")
        client = RequestsClient(session=session)

        asyncio.run(client.send(HttpRequest(method="get", url="http://example.api/items")))

        assert session.request.call_args.kwargs["data"] is None
        assert session.request.call_args.kwargs["timeout"] is None
