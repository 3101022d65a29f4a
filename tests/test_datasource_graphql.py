"""
Tests for the GraphQL data source.
"""

import json

import httpx
import pytest
from conftest import ADA, make_board

from boardsync.core.datasource.graphql import MOVE_CARD, GraphQLDataSource
from boardsync.core.datasource.models import ErrorCode

BASE_URL = "http://boards.test/api"


class GraphQLServer:
    """MockTransport handler answering every operation with a fixed body."""

    def __init__(self, body: dict | None = None, status: int = 200):
        self.body = body if body is not None else {"data": {}}
        self.status = status
        self.requests: list[dict] = []
        self.headers: list[httpx.Headers] = []
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        self.paths.append(request.url.path)
        return httpx.Response(self.status, json=self.body)

    @property
    def variables(self) -> dict:
        return self.requests[-1]["variables"]


def make_source(server: GraphQLServer) -> GraphQLDataSource:
    return GraphQLDataSource(BASE_URL, transport=httpx.MockTransport(server))


class TestExecute:
    """Tests for request framing and error mapping."""

    @pytest.mark.asyncio
    async def test_posts_query_and_variables(self) -> None:
        """Test that operations POST to the configured endpoint."""
        server = GraphQLServer({"data": {"moveCard": True}})
        source = make_source(server)

        response = await source.move_card("dash-1", "col-a", "col-b", "c1", 2)

        assert response.ok
        assert server.paths == ["/api/graphql"]
        assert server.requests[0]["query"] == MOVE_CARD
        assert server.variables == {
            "input": {
                "dashboardId": "dash-1",
                "fromColumnId": "col-a",
                "toColumnId": "col-b",
                "cardId": "c1",
                "newIndex": 2,
            }
        }
        await source.aclose()

    @pytest.mark.asyncio
    async def test_custom_endpoint(self) -> None:
        """Test that the endpoint path is appended to the base URL."""
        server = GraphQLServer({"data": {"dashboards": []}})
        source = GraphQLDataSource(
            BASE_URL + "/", endpoint="/v2/graphql", transport=httpx.MockTransport(server)
        )

        await source.get_dashboards()

        assert server.paths == ["/api/v2/graphql"]
        await source.aclose()

    @pytest.mark.asyncio
    async def test_graphql_errors(self) -> None:
        """Test that the first GraphQL error is surfaced with its extensions."""
        server = GraphQLServer(
            {
                "errors": [
                    {
                        "message": "Card not found",
                        "extensions": {"code": "NOT_FOUND", "status": 404},
                    },
                    {"message": "ignored"},
                ]
            }
        )
        source = make_source(server)

        response = await source.move_card("dash-1", "col-a", "col-b", "c1", 0)

        assert response.error.message == "Card not found"
        assert response.error.code == "NOT_FOUND"
        assert response.error.status == 404
        await source.aclose()

    @pytest.mark.asyncio
    async def test_graphql_error_defaults(self) -> None:
        """Test the defaults for errors without extensions."""
        source = make_source(GraphQLServer({"errors": [{"message": "Bad input"}]}))

        response = await source.update_column_order("dash-1", ["col-a"])

        assert response.error.code == ErrorCode.GRAPHQL_ERROR.value
        assert response.error.status == 400
        await source.aclose()

    @pytest.mark.asyncio
    async def test_http_error_status(self) -> None:
        """Test that a non-2xx response becomes API_ERROR."""
        source = make_source(GraphQLServer({"message": "boom"}, status=502))

        response = await source.get_dashboards()

        assert response.error.message == "HTTP error! status: 502"
        assert response.error.code == ErrorCode.API_ERROR.value
        assert response.error.status == 502
        await source.aclose()

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Test that a connection failure becomes NETWORK_ERROR."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        source = GraphQLDataSource(BASE_URL, transport=httpx.MockTransport(handler))

        response = await source.get_dashboards()

        assert response.error.code == ErrorCode.NETWORK_ERROR.value
        await source.aclose()

    @pytest.mark.asyncio
    async def test_missing_result(self) -> None:
        """Test that a null result for an entity query is NOT_FOUND."""
        source = make_source(GraphQLServer({"data": {"dashboard": None}}))

        response = await source.get_dashboard("dash-9")

        assert response.error.code == ErrorCode.NOT_FOUND.value
        assert response.error.message == "dashboard returned no data"
        await source.aclose()

    @pytest.mark.asyncio
    async def test_invalid_payload(self) -> None:
        """Test that a result that does not validate is a GRAPHQL_ERROR."""
        source = make_source(GraphQLServer({"data": {"dashboard": {"id": "dash-1"}}}))

        response = await source.get_dashboard("dash-1")

        assert response.error.code == ErrorCode.GRAPHQL_ERROR.value
        await source.aclose()


class TestOperations:
    """Tests for individual operations."""

    @pytest.mark.asyncio
    async def test_login_keeps_token(self) -> None:
        """Test that login stores the token and sends it afterwards."""
        auth = {**ADA.to_wire(), "token": "gql-token"}
        server = GraphQLServer({"data": {"login": auth, "dashboards": []}})
        source = make_source(server)

        response = await source.login(ADA.email, "S3cret!pass")
        await source.get_dashboards()

        assert response.data.token == "gql-token"
        assert server.requests[0]["variables"] == {
            "email": ADA.email,
            "password": "S3cret!pass",
        }
        assert server.headers[1]["Authorization"] == "Bearer gql-token"
        await source.aclose()

    @pytest.mark.asyncio
    async def test_get_dashboards(self) -> None:
        """Test that dashboards are validated from data.dashboards."""
        source = make_source(GraphQLServer({"data": {"dashboards": [make_board().to_wire()]}}))

        response = await source.get_dashboards()

        assert [d.id for d in response.data] == ["dash-1"]
        await source.aclose()

    @pytest.mark.asyncio
    async def test_archived_column_from_camel_case(self) -> None:
        """Test that the GraphQL spelling of the archived flag is understood."""
        column = {"id": "col-b", "title": "B", "order": 1, "cards": [], "isArchive": True}
        server = GraphQLServer({"data": {"updateColumn": column}})
        source = make_source(server)

        response = await source.update_column("dash-1", "col-b", {"title": "B"})

        assert response.data.is_archived is True
        assert server.variables == {
            "dashboardId": "dash-1",
            "columnId": "col-b",
            "input": {"title": "B"},
        }
        await source.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("updates", [{"is_archived": True}, {"is_archive": True}])
    async def test_archive_sends_camel_case(self, updates) -> None:
        """Test that archiving sends the flag with the spelling it is read back with."""
        column = {"id": "col-b", "title": "B", "order": 1, "cards": [], "isArchive": True}
        server = GraphQLServer({"data": {"updateColumn": column}})
        source = make_source(server)

        response = await source.update_column("dash-1", "col-b", updates)

        assert server.variables["input"] == {"isArchive": True}
        assert response.data.is_archived is True
        await source.aclose()

    @pytest.mark.asyncio
    async def test_update_card_variables(self) -> None:
        """Test that card updates are sent with wire names."""
        card = {"id": "c1", "number": 1, "title": "T", "columnId": "col-a", "dueDate": None}
        server = GraphQLServer({"data": {"updateCard": card}})
        source = make_source(server)

        await source.update_card("dash-1", "col-a", "c1", {"title": "T", "due_date": None})

        assert server.variables["input"] == {"title": "T", "dueDate": None}
        assert server.variables["cardId"] == "c1"
        await source.aclose()

    @pytest.mark.asyncio
    async def test_change_password(self) -> None:
        """Test that change-password returns the raw result."""
        server = GraphQLServer({"data": {"changePassword": {"success": True}}})
        source = make_source(server)

        response = await source.change_password(ADA.id, "old", "new")

        assert response.data == {"success": True}
        assert server.variables["userId"] == ADA.id
        await source.aclose()

    @pytest.mark.asyncio
    async def test_logout_clears_token(self) -> None:
        """Test that logout forgets the token."""
        source = make_source(GraphQLServer({"data": {"logout": True}}))
        source.token = "gql-token"

        response = await source.logout()

        assert response.ok
        assert source.token is None
        await source.aclose()
