"""GitHub GraphQL API interactions for upvote calculation.

The client is a thin query/mutation executor: it posts the fixed documents
from queries.py and turns their responses into models.
"""

import logging

from ghupvotes.upvotes.api_logging import create_logging_client
from ghupvotes.upvotes.models import (
    ItemsPage,
    PageInfo,
    ProjectIds,
    ProjectItem,
    RateLimit,
)
from ghupvotes.upvotes.queries import (
    FIELD_NAME_QUERY,
    INNER_CURSOR_VARIABLES,
    PROJECT_FIELD_QUERY,
    PROJECT_IDS_QUERY,
    PROJECT_ITEM_QUERY,
    PROJECT_ITEMS_QUERY,
    UPDATE_ITEM_NUMBER_MUTATION,
)

logger = logging.getLogger(__name__)


class GraphQLError(RuntimeError):
    """Raised when a GraphQL response carries errors."""

    def __init__(self, messages: list[str]):
        self.messages = messages
        super().__init__(f"GraphQL errors: {messages}")


class NotFoundError(RuntimeError):
    """Raised when a project, field or item does not exist or is not visible."""


def _inner_cursor_variables(cursors: dict[str, str | None] | None) -> dict[str, str | None]:
    """Every inner cursor variable, null meaning "first page"."""
    cursors = cursors or {}
    return {name: cursors.get(name) for name in INNER_CURSOR_VARIABLES}


class GitHubClient:
    """Client for the GitHub GraphQL API."""

    GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(self, token: str):
        """Initialize client with a GitHub token.

        If GHUPVOTES_LOG_API is set, all requests and responses are captured
        to ~/.ghupvotes/api_logs/ (see api_logging).
        """
        self.token = token
        self._client = create_logging_client(
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=30.0,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def graphql(self, query: str, variables: dict | None = None) -> dict:
        """Execute a GraphQL query or mutation and return its data."""
        resp = self._client.post(
            self.GRAPHQL_URL,
            json={"query": query, "variables": variables or {}},
        )
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise GraphQLError([f"Response is not valid JSON: {e}"]) from e

        if not isinstance(data, dict):
            raise GraphQLError([f"Unexpected response payload: {data!r}"])
        if data.get("errors"):
            raise GraphQLError([e.get("message", str(e)) for e in data["errors"]])
        if data.get("data") is None:
            raise GraphQLError(["Response carries no data"])

        return data["data"]

    def get_project_ids(
        self, org: str, project_number: int, field_name: str
    ) -> tuple[ProjectIds, RateLimit | None]:
        """Look up a project's ID and the ID of its upvote field by name."""
        data = self.graphql(
            PROJECT_IDS_QUERY,
            {"org": org, "number": project_number, "fieldName": field_name},
        )
        organization = data.get("organization") or {}
        project = organization.get("projectV2")
        if not project:
            raise NotFoundError(f"Project #{project_number} not found for organization {org}")

        rate_limit = RateLimit.from_graphql(data.get("rateLimit"))
        return self._project_ids(project, field_name), rate_limit

    def get_project_field(
        self, project_id: str, field_name: str
    ) -> tuple[ProjectIds, RateLimit | None]:
        """Look up the ID of a project's upvote field by name."""
        data = self.graphql(PROJECT_FIELD_QUERY, {"projectId": project_id, "fieldName": field_name})
        project = data.get("node")
        if not project:
            raise NotFoundError(f"Project not found: {project_id}")

        rate_limit = RateLimit.from_graphql(data.get("rateLimit"))
        return self._project_ids(project, field_name), rate_limit

    def _project_ids(self, project: dict, field_name: str) -> ProjectIds:
        field = project.get("field") or {}
        if not field.get("id"):
            raise NotFoundError(f"Number field {field_name!r} not found in project {project['id']}")
        return ProjectIds(project_id=project["id"], field_id=field["id"], field_name=field["name"])

    def get_field_name(self, field_id: str) -> tuple[str, RateLimit | None]:
        """Look up the name of a project field by ID."""
        data = self.graphql(FIELD_NAME_QUERY, {"fieldId": field_id})
        field = data.get("node") or {}
        if not field.get("name"):
            raise NotFoundError(f"Project field not found: {field_id}")
        return field["name"], RateLimit.from_graphql(data.get("rateLimit"))

    def get_project_items(
        self,
        project_id: str,
        field_name: str,
        cursor: str | None = None,
        page_size: int = 10,
    ) -> ItemsPage:
        """Get one page of a project's items, each with its first page of connections.

        Args:
            project_id: GraphQL ID of the project
            field_name: Name of the upvote field (its current value is read)
            cursor: End cursor of the previous page, None for the first page
            page_size: Items per page

        Returns:
            ItemsPage with the parsed items, page info and rate limit
        """
        variables = {
            "projectId": project_id,
            "fieldName": field_name,
            "pageSize": page_size,
            "cursor": cursor,
            **_inner_cursor_variables(None),
        }
        data = self.graphql(PROJECT_ITEMS_QUERY, variables)

        project = data.get("node")
        if not project:
            raise NotFoundError(f"Project not found: {project_id}")

        items = project["items"]
        return ItemsPage(
            items=[ProjectItem.from_graphql(node) for node in items["nodes"] if node],
            page_info=PageInfo.from_graphql(items["pageInfo"]),
            rate_limit=RateLimit.from_graphql(data.get("rateLimit")),
        )

    def get_project_item(
        self,
        item_id: str,
        field_name: str,
        cursors: dict[str, str | None] | None = None,
    ) -> tuple[ProjectItem, RateLimit | None]:
        """Re-query a single project item with its connections paged to the given cursors.

        Args:
            item_id: GraphQL ID of the project item
            field_name: Name of the upvote field
            cursors: Inner cursor per query variable; missing or None means first page

        Returns:
            Tuple of (ProjectItem, RateLimit)
        """
        variables = {"itemId": item_id, "fieldName": field_name, **_inner_cursor_variables(cursors)}
        data = self.graphql(PROJECT_ITEM_QUERY, variables)

        node = data.get("node")
        if not node:
            raise NotFoundError(f"Project item not found: {item_id}")

        return ProjectItem.from_graphql(node), RateLimit.from_graphql(data.get("rateLimit"))

    def update_item_number(
        self, project_id: str, item_id: str, field_id: str, value: float
    ) -> None:
        """Set a number field value on a project item.

        Args:
            project_id: GraphQL ID of the project
            item_id: GraphQL ID of the project item
            field_id: GraphQL ID of the number field
            value: New field value
        """
        self.graphql(
            UPDATE_ITEM_NUMBER_MUTATION,
            {
                "projectId": project_id,
                "itemId": item_id,
                "fieldId": field_id,
                "value": value,
            },
        )
