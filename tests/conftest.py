import json
from pathlib import Path

import pytest

from oas_graphql.http import HttpRequest, HttpResponse
from oas_graphql.oas.loader import load_document

FIXTURES = Path(__file__).parent / "fixtures"


class StubClient:
    """Answers requests from a table of canned responses and records them."""

    def __init__(self, routes: dict[tuple[str, str], HttpResponse] | None = None):
        self.routes = routes or {}
        self.requests: list[HttpRequest] = []

    def add_json(self, method: str, url: str, data, status_code: int = 200) -> None:
        self.routes[(method, url)] = HttpResponse(
            status_code=status_code,
            headers={"Content-Type": "application/json"},
            text=json.dumps(data),
        )

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url))
        if response is None:
            return HttpResponse(status_code=404, headers={"content-type": "application/json"}, text='{"error": "no route"}')
        return response


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def example_doc():
    return load_document(FIXTURES / "example_api.yaml")


@pytest.fixture
def secure_doc():
    return load_document(FIXTURES / "secure_api.yaml")
