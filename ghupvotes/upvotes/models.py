"""Data models for upvote calculation.

Each model mirrors a piece of the fixed GraphQL response shape requested in
queries.py and knows how to build itself from that JSON via ``from_graphql``.
Union types (project item content, timeline events, linked issues) are
dispatched on their explicit discriminant and fail loudly on an unknown tag.
"""

from dataclasses import dataclass, field
from enum import Enum


class UnknownContentTypeError(RuntimeError):
    """Raised when a union discriminant matches none of the known variants."""


class ItemType(Enum):
    """Type of a project item (GitHub's ProjectV2ItemType)."""

    ISSUE = "ISSUE"
    PULL_REQUEST = "PULL_REQUEST"
    DRAFT_ISSUE = "DRAFT_ISSUE"
    # Any other tag, e.g. REDACTED when the content is hidden from the token
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_graphql(cls, value: str) -> "ItemType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class TimelineItemKind(Enum):
    """Timeline events that count towards an item's upvotes."""

    CONNECTED_EVENT = "ConnectedEvent"
    CROSS_REFERENCED_EVENT = "CrossReferencedEvent"
    ISSUE_COMMENT = "IssueComment"
    MARKED_AS_DUPLICATE_EVENT = "MarkedAsDuplicateEvent"
    REFERENCED_EVENT = "ReferencedEvent"
    SUBSCRIBED_EVENT = "SubscribedEvent"


# Events that point at another issue or PR, and the field holding it
LINKING_EVENTS = {
    TimelineItemKind.CONNECTED_EVENT: "source",
    TimelineItemKind.CROSS_REFERENCED_EVENT: "source",
    TimelineItemKind.MARKED_AS_DUPLICATE_EVENT: "canonical",
}

# Issue/PR typenames accepted for linked content
LINKED_TYPENAMES = ("Issue", "PullRequest")


@dataclass(frozen=True)
class PageInfo:
    """Pagination information for a connection."""

    end_cursor: str | None = None
    has_next_page: bool = False

    @classmethod
    def from_graphql(cls, data: dict | None) -> "PageInfo":
        if not data:
            return cls()
        return cls(end_cursor=data.get("endCursor"), has_next_page=bool(data.get("hasNextPage")))


@dataclass(frozen=True)
class RateLimit:
    """Rate limit information reported alongside a query."""

    remaining: int
    cost: int = 0

    @classmethod
    def from_graphql(cls, data: dict | None) -> "RateLimit | None":
        if not data:
            return None
        return cls(remaining=data["remaining"], cost=data.get("cost") or 0)


@dataclass(frozen=True)
class CommentsAndReactions:
    """Comment and reaction totals of an issue or pull request."""

    comments: int = 0
    reactions: int = 0

    def upvotes(self) -> int:
        return self.comments + self.reactions

    @classmethod
    def from_graphql(cls, data: dict) -> "CommentsAndReactions":
        return cls(
            comments=data["comments"]["totalCount"],
            reactions=data["reactions"]["totalCount"],
        )


@dataclass(frozen=True)
class Reactable:
    """Something that can be reacted to (a comment, an issue)."""

    reactions: int = 0


@dataclass(frozen=True)
class ReactableConnection:
    """One fetched page of a connection whose nodes carry reaction counts.

    ``nodes`` only holds the current page. Totals must be accumulated page by
    page; ``total_count`` covers the whole connection.
    """

    nodes: list[Reactable] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)
    total_count: int = 0

    def reactable_upvotes(self) -> int:
        """Sum of reactions over the nodes of the current page."""
        return sum(node.reactions for node in self.nodes)

    def upvotes(self) -> int:
        return self.reactable_upvotes()

    def has_next_page(self) -> bool:
        return self.page_info.has_next_page

    def end_cursor(self) -> str | None:
        return self.page_info.end_cursor

    @classmethod
    def from_graphql(cls, data: dict | None) -> "ReactableConnection":
        if not data:
            return cls()
        return cls(
            nodes=[
                Reactable(reactions=node["reactions"]["totalCount"])
                for node in data.get("nodes") or []
                if node
            ],
            page_info=PageInfo.from_graphql(data.get("pageInfo")),
            total_count=data.get("totalCount") or 0,
        )


@dataclass(frozen=True)
class LinkedContent:
    """Issue or pull request on the other end of a timeline event."""

    typename: str
    counts: CommentsAndReactions

    def upvotes(self) -> int:
        return self.counts.upvotes()

    @classmethod
    def from_graphql(cls, data: dict) -> "LinkedContent":
        typename = data.get("__typename")
        if typename not in LINKED_TYPENAMES:
            raise UnknownContentTypeError(f"Unknown linked content type: {typename!r}")
        return cls(typename=typename, counts=CommentsAndReactions.from_graphql(data))


@dataclass(frozen=True)
class TimelineItem:
    """A single event in an issue or pull request's history."""

    kind: TimelineItemKind
    reactions: int = 0
    linked: LinkedContent | None = None

    def upvotes(self) -> int:
        # existing at all is worth one upvote
        upvotes = 1

        if self.kind is TimelineItemKind.ISSUE_COMMENT:
            upvotes += self.reactions
        elif self.kind in LINKING_EVENTS and self.linked is not None:
            upvotes += self.linked.upvotes()

        return upvotes

    @classmethod
    def from_graphql(cls, data: dict) -> "TimelineItem":
        typename = data.get("__typename")
        try:
            kind = TimelineItemKind(typename)
        except ValueError:
            raise UnknownContentTypeError(f"Unknown timeline item type: {typename!r}") from None

        if kind is TimelineItemKind.ISSUE_COMMENT:
            return cls(kind=kind, reactions=data["reactions"]["totalCount"])

        if kind in LINKING_EVENTS:
            # null when the linked issue was deleted or is not visible to the token
            linked_data = data.get(LINKING_EVENTS[kind])
            linked = LinkedContent.from_graphql(linked_data) if linked_data else None
            return cls(kind=kind, linked=linked)

        return cls(kind=kind)


@dataclass(frozen=True)
class TimelineConnection:
    """One fetched page of an item's timeline."""

    nodes: list[TimelineItem] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)

    def timeline_upvotes(self) -> int:
        """Sum of upvotes over the timeline events of the current page."""
        return sum(node.upvotes() for node in self.nodes)

    def upvotes(self) -> int:
        return self.timeline_upvotes()

    def has_next_page(self) -> bool:
        return self.page_info.has_next_page

    def end_cursor(self) -> str | None:
        return self.page_info.end_cursor

    @classmethod
    def from_graphql(cls, data: dict | None) -> "TimelineConnection":
        if not data:
            return cls()
        return cls(
            nodes=[TimelineItem.from_graphql(node) for node in data.get("nodes") or [] if node],
            page_info=PageInfo.from_graphql(data.get("pageInfo")),
        )


Connection = ReactableConnection | TimelineConnection


@dataclass(frozen=True)
class IssueContent:
    """Issue linked to a project item."""

    id: str
    closed: bool
    counts: CommentsAndReactions
    comments: ReactableConnection
    tracked_issues: ReactableConnection
    tracked_in_issues: ReactableConnection
    timeline_items: TimelineConnection

    def connections(self) -> dict[str, Connection]:
        """Paginated connections keyed by the query variable holding their cursor."""
        return {
            "commentsCursor": self.comments,
            "trackedIssuesCursor": self.tracked_issues,
            "trackedInIssuesCursor": self.tracked_in_issues,
            "timelineItemsCursor": self.timeline_items,
        }

    @classmethod
    def from_graphql(cls, data: dict) -> "IssueContent":
        return cls(
            id=data["id"],
            closed=data["closed"],
            counts=CommentsAndReactions.from_graphql(data),
            comments=ReactableConnection.from_graphql(data.get("comments")),
            tracked_issues=ReactableConnection.from_graphql(data.get("trackedIssues")),
            tracked_in_issues=ReactableConnection.from_graphql(data.get("trackedInIssues")),
            timeline_items=TimelineConnection.from_graphql(data.get("timelineItems")),
        )


@dataclass(frozen=True)
class PullRequestContent:
    """Pull request linked to a project item."""

    id: str
    closed: bool
    counts: CommentsAndReactions
    comments: ReactableConnection
    closing_issues_references: ReactableConnection
    timeline_items: TimelineConnection

    def connections(self) -> dict[str, Connection]:
        """Paginated connections keyed by the query variable holding their cursor."""
        return {
            "commentsCursor": self.comments,
            "closingIssuesReferencesCursor": self.closing_issues_references,
            "timelineItemsCursor": self.timeline_items,
        }

    @classmethod
    def from_graphql(cls, data: dict) -> "PullRequestContent":
        return cls(
            id=data["id"],
            closed=data["closed"],
            counts=CommentsAndReactions.from_graphql(data),
            comments=ReactableConnection.from_graphql(data.get("comments")),
            closing_issues_references=ReactableConnection.from_graphql(
                data.get("closingIssuesReferences")
            ),
            timeline_items=TimelineConnection.from_graphql(data.get("timelineItems")),
        )


Content = IssueContent | PullRequestContent

_CONTENT_TYPES: dict[ItemType, type[IssueContent] | type[PullRequestContent]] = {
    ItemType.ISSUE: IssueContent,
    ItemType.PULL_REQUEST: PullRequestContent,
}


@dataclass(frozen=True)
class ProjectItem:
    """A row on a Project board. Read-only snapshot of one fetched page."""

    id: str
    type: ItemType
    is_archived: bool = False
    content: Content | None = None
    current_value: float | None = None  # value currently stored in the upvote field
    type_name: str = ""  # tag as sent by GitHub

    def resolve(self) -> Content:
        """Return the issue or pull request selected by the item type.

        Raises:
            UnknownContentTypeError: if the type is not Issue or PullRequest,
                or the matching content is missing
        """
        type_name = self.type_name or self.type.value
        expected = _CONTENT_TYPES.get(self.type)
        if expected is None:
            raise UnknownContentTypeError(
                f"Project item {self.id} of type {type_name} has no upvote content"
            )
        if not isinstance(self.content, expected):
            raise UnknownContentTypeError(
                f"Project item {self.id} of type {type_name} is missing its content"
            )
        return self.content

    @classmethod
    def from_graphql(cls, data: dict) -> "ProjectItem":
        # Unknown tags only fail once an item that is not skipped is resolved
        item_type = ItemType.from_graphql(data["type"])

        content: Content | None = None
        content_type = _CONTENT_TYPES.get(item_type)
        if content_type is not None and data.get("content"):
            content = content_type.from_graphql(data["content"])

        field_value = data.get("fieldValueByName") or {}

        return cls(
            id=data["id"],
            type=item_type,
            is_archived=data.get("isArchived", False),
            content=content,
            current_value=field_value.get("number"),
            type_name=data["type"],
        )


@dataclass(frozen=True)
class ItemsPage:
    """One page of the project's item list."""

    items: list[ProjectItem]
    page_info: PageInfo
    rate_limit: RateLimit | None = None


@dataclass(frozen=True)
class ProjectIds:
    """IDs required to write upvotes back to a project."""

    project_id: str
    field_id: str
    field_name: str


@dataclass
class ItemResult:
    """Outcome of processing a single project item."""

    item_id: str
    score: int | None = None
    skipped: bool = False
    written: bool = False


@dataclass
class OuterCursor:
    """Position in the project's item list, owned by the walker."""

    value: str | None = None

    def advance(self, end_cursor: str | None) -> None:
        self.value = end_cursor

    def persisted(self) -> str:
        """Value handed to the next run (empty string starts from the top)."""
        return self.value or ""


@dataclass
class InnerCursorSet:
    """Cursors of one item's sub-connections, keyed by query variable name.

    Lives for the aggregation of a single item and is never persisted. Once a
    connection reports no further page it is exhausted: its cursor is frozen
    and later pages of it no longer count.
    """

    cursors: dict[str, str | None] = field(default_factory=dict)
    exhausted: set[str] = field(default_factory=set)

    def is_live(self, name: str) -> bool:
        return name not in self.exhausted

    def advance(self, name: str, connection: Connection) -> None:
        end_cursor = connection.end_cursor()
        if connection.has_next_page():
            self.cursors[name] = end_cursor
            return

        self.exhausted.add(name)
        if end_cursor:
            self.cursors[name] = end_cursor
        else:
            self.cursors.setdefault(name, None)

    def has_live(self) -> bool:
        return any(name not in self.exhausted for name in self.cursors)

    def variables(self) -> dict[str, str | None]:
        return dict(self.cursors)
