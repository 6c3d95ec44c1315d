"""Builders for GraphQL response data and an in-memory GitHub client."""

import threading

from ghupvotes.upvotes.github_api import GraphQLError, NotFoundError
from ghupvotes.upvotes.models import ItemsPage, PageInfo, ProjectItem, RateLimit


def page_info(end_cursor: str | None = None, has_next_page: bool = False) -> dict:
    return {"endCursor": end_cursor, "hasNextPage": has_next_page}


def reactable_connection(
    reactions=(),
    *,
    total_count: int | None = None,
    end_cursor: str | None = None,
    has_next_page: bool = False,
) -> dict:
    """A connection page with one node per entry of ``reactions``."""
    return {
        "totalCount": len(reactions) if total_count is None else total_count,
        "pageInfo": page_info(end_cursor, has_next_page),
        "nodes": [{"reactions": {"totalCount": r}} for r in reactions],
    }


def timeline(*nodes, end_cursor: str | None = None, has_next_page: bool = False) -> dict:
    return {"pageInfo": page_info(end_cursor, has_next_page), "nodes": list(nodes)}


def issue_comment(reactions: int = 0) -> dict:
    return {"__typename": "IssueComment", "reactions": {"totalCount": reactions}}


def linked(comments: int = 0, reactions: int = 0, typename: str = "Issue") -> dict:
    return {
        "__typename": typename,
        "comments": {"totalCount": comments},
        "reactions": {"totalCount": reactions},
    }


def connected_event(source: dict | None) -> dict:
    return {"__typename": "ConnectedEvent", "source": source}


def cross_referenced_event(source: dict | None) -> dict:
    return {"__typename": "CrossReferencedEvent", "source": source}


def marked_as_duplicate_event(canonical: dict | None) -> dict:
    return {"__typename": "MarkedAsDuplicateEvent", "canonical": canonical}


def event(typename: str) -> dict:
    """A timeline event without nested content, like ReferencedEvent."""
    return {"__typename": typename}


def issue(
    node_id: str = "I_1",
    *,
    closed: bool = False,
    reactions: int = 0,
    comments: dict | None = None,
    tracked_issues: dict | None = None,
    tracked_in_issues: dict | None = None,
    timeline_items: dict | None = None,
) -> dict:
    return {
        "__typename": "Issue",
        "id": node_id,
        "closed": closed,
        "reactions": {"totalCount": reactions},
        "comments": comments or reactable_connection(),
        "trackedIssues": tracked_issues or reactable_connection(),
        "trackedInIssues": tracked_in_issues or reactable_connection(),
        "timelineItems": timeline_items or timeline(),
    }


def pull_request(
    node_id: str = "PR_1",
    *,
    closed: bool = False,
    reactions: int = 0,
    comments: dict | None = None,
    closing_issues_references: dict | None = None,
    timeline_items: dict | None = None,
) -> dict:
    return {
        "__typename": "PullRequest",
        "id": node_id,
        "closed": closed,
        "reactions": {"totalCount": reactions},
        "comments": comments or reactable_connection(),
        "closingIssuesReferences": closing_issues_references or reactable_connection(),
        "timelineItems": timeline_items or timeline(),
    }


def project_item(
    item_id: str = "PVTI_1",
    content: dict | None = None,
    *,
    item_type: str | None = None,
    archived: bool = False,
    current: float | None = None,
) -> dict:
    """A ProjectV2Item node; the type follows the content unless given."""
    if item_type is None:
        typename = content["__typename"] if content else None
        item_type = {"Issue": "ISSUE", "PullRequest": "PULL_REQUEST"}.get(typename, "DRAFT_ISSUE")
    return {
        "id": item_id,
        "type": item_type,
        "isArchived": archived,
        "fieldValueByName": {"number": current} if current is not None else None,
        "content": content,
    }


def page_cursor(index: int) -> str:
    """End cursor of the page at ``index`` in a FakeClient."""
    return f"cursor-{index + 1}"


class FakeClient:
    """In-memory stand-in for GitHubClient.

    ``pages`` holds the item nodes of each page of the project; page N ends
    at cursor "cursor-N". ``requeries`` holds, per item ID, the nodes
    returned by successive re-queries. Every query costs ``cost`` from
    ``remaining``.
    """

    def __init__(
        self,
        pages: list[list[dict]] | None = None,
        requeries: dict[str, list[dict]] | None = None,
        remaining: int = 5000,
        cost: int = 1,
    ):
        self.pages = pages or []
        self.requeries = {item_id: list(nodes) for item_id, nodes in (requeries or {}).items()}
        self.remaining = remaining
        self.cost = cost
        self.page_requests: list[str | None] = []
        self.item_requests: list[tuple[str, dict]] = []
        self.updates: list[tuple[str, str, str, float]] = []
        self.fail_updates: set[str] = set()
        self.fail_requeries: set[str] = set()
        self.fail_page_cursors: set[str | None] = set()
        self.update_threads: set[str] = set()
        self._lock = threading.Lock()

    def _rate_limit(self) -> RateLimit:
        with self._lock:
            self.remaining -= self.cost
            return RateLimit(remaining=self.remaining, cost=self.cost)

    def get_project_items(self, project_id, field_name, cursor=None, page_size=10):
        self.page_requests.append(cursor)
        if cursor in self.fail_page_cursors:
            raise GraphQLError(["Something went wrong while executing your query."])

        index = int(cursor.rsplit("-", 1)[1]) if cursor else 0
        nodes = self.pages[index] if self.pages else []
        return ItemsPage(
            items=[ProjectItem.from_graphql(node) for node in nodes],
            page_info=PageInfo(
                end_cursor=page_cursor(index) if nodes else None,
                has_next_page=index < len(self.pages) - 1,
            ),
            rate_limit=self._rate_limit(),
        )

    def get_project_item(self, item_id, field_name, cursors=None):
        with self._lock:
            self.item_requests.append((item_id, dict(cursors or {})))
            if item_id in self.fail_requeries:
                message = f"Could not resolve to a node with the global id of '{item_id}'"
                raise GraphQLError([message])
            nodes = self.requeries.get(item_id)
            if not nodes:
                raise NotFoundError(f"Project item not found: {item_id}")
            node = nodes.pop(0)
        return ProjectItem.from_graphql(node), self._rate_limit()

    def update_item_number(self, project_id, item_id, field_id, value):
        with self._lock:
            self.update_threads.add(threading.current_thread().name)
            if item_id in self.fail_updates:
                raise GraphQLError([f"Could not update {item_id}"])
            self.updates.append((project_id, item_id, field_id, value))

    def updated_items(self) -> list[str]:
        return [item_id for _, item_id, _, _ in self.updates]
