"""GraphQL documents used to calculate and write upvotes.

The response shape of these documents is what models.py parses. Every query
also asks for ``rateLimit`` so the governor sees each response's budget.
"""

# Nodes per page of each nested connection
CONNECTION_PAGE_SIZE = 10

TIMELINE_ITEM_TYPES = (
    "CONNECTED_EVENT",
    "CROSS_REFERENCED_EVENT",
    "ISSUE_COMMENT",
    "MARKED_AS_DUPLICATE_EVENT",
    "REFERENCED_EVENT",
    "SUBSCRIBED_EVENT",
)

INNER_CURSOR_VARIABLES = (
    "commentsCursor",
    "trackedIssuesCursor",
    "trackedInIssuesCursor",
    "closingIssuesReferencesCursor",
    "timelineItemsCursor",
)

_REACTABLE_PAGE = """
    totalCount
    pageInfo { endCursor hasNextPage }
    nodes { reactions { totalCount } }
"""

_COMMENTS_AND_REACTIONS = """
    __typename
    ... on Issue { comments { totalCount } reactions { totalCount } }
    ... on PullRequest { comments { totalCount } reactions { totalCount } }
"""

_TIMELINE_PAGE = f"""
    pageInfo {{ endCursor hasNextPage }}
    nodes {{
        __typename
        ... on ConnectedEvent {{ source {{ {_COMMENTS_AND_REACTIONS} }} }}
        ... on CrossReferencedEvent {{ source {{ {_COMMENTS_AND_REACTIONS} }} }}
        ... on IssueComment {{ reactions {{ totalCount }} }}
        ... on MarkedAsDuplicateEvent {{ canonical {{ {_COMMENTS_AND_REACTIONS} }} }}
    }}
"""

_CONNECTION_ARGS = f"first: {CONNECTION_PAGE_SIZE}"
_TIMELINE_TYPES_ARG = ", ".join(TIMELINE_ITEM_TYPES)

PROJECT_ITEM_FRAGMENT = f"""
fragment ProjectItemFields on ProjectV2Item {{
    id
    isArchived
    type
    fieldValueByName(name: $fieldName) {{
        ... on ProjectV2ItemFieldNumberValue {{ number }}
    }}
    content {{
        __typename
        ... on Issue {{
            id
            closed
            reactions {{ totalCount }}
            comments({_CONNECTION_ARGS}, after: $commentsCursor) {{ {_REACTABLE_PAGE} }}
            trackedIssues({_CONNECTION_ARGS}, after: $trackedIssuesCursor) {{ {_REACTABLE_PAGE} }}
            trackedInIssues(
                {_CONNECTION_ARGS}
                after: $trackedInIssuesCursor
            ) {{ {_REACTABLE_PAGE} }}
            timelineItems(
                {_CONNECTION_ARGS}
                after: $timelineItemsCursor
                itemTypes: [{_TIMELINE_TYPES_ARG}]
            ) {{ {_TIMELINE_PAGE} }}
        }}
        ... on PullRequest {{
            id
            closed
            reactions {{ totalCount }}
            comments({_CONNECTION_ARGS}, after: $commentsCursor) {{ {_REACTABLE_PAGE} }}
            closingIssuesReferences(
                {_CONNECTION_ARGS}
                after: $closingIssuesReferencesCursor
            ) {{ {_REACTABLE_PAGE} }}
            timelineItems(
                {_CONNECTION_ARGS}
                after: $timelineItemsCursor
                itemTypes: [{_TIMELINE_TYPES_ARG}]
            ) {{ {_TIMELINE_PAGE} }}
        }}
    }}
}}
"""

_INNER_CURSOR_PARAMS = ", ".join(f"${name}: String" for name in INNER_CURSOR_VARIABLES)

PROJECT_ITEMS_QUERY = (
    f"""
query(
    $projectId: ID!, $fieldName: String!, $pageSize: Int!, $cursor: String,
    {_INNER_CURSOR_PARAMS}
) {{
    node(id: $projectId) {{
        ... on ProjectV2 {{
            items(first: $pageSize, after: $cursor) {{
                pageInfo {{ endCursor hasNextPage }}
                nodes {{ ...ProjectItemFields }}
            }}
        }}
    }}
    rateLimit {{ remaining cost }}
}}
"""
    + PROJECT_ITEM_FRAGMENT
)

PROJECT_ITEM_QUERY = (
    f"""
query($itemId: ID!, $fieldName: String!, {_INNER_CURSOR_PARAMS}) {{
    node(id: $itemId) {{
        ...ProjectItemFields
    }}
    rateLimit {{ remaining cost }}
}}
"""
    + PROJECT_ITEM_FRAGMENT
)

PROJECT_IDS_QUERY = """
query($org: String!, $number: Int!, $fieldName: String!) {
    organization(login: $org) {
        projectV2(number: $number) {
            id
            field(name: $fieldName) {
                ... on ProjectV2Field { id name }
            }
        }
    }
    rateLimit { remaining cost }
}
"""

PROJECT_FIELD_QUERY = """
query($projectId: ID!, $fieldName: String!) {
    node(id: $projectId) {
        ... on ProjectV2 {
            id
            field(name: $fieldName) {
                ... on ProjectV2Field { id name }
            }
        }
    }
    rateLimit { remaining cost }
}
"""

FIELD_NAME_QUERY = """
query($fieldId: ID!) {
    node(id: $fieldId) {
        ... on ProjectV2Field { id name }
    }
    rateLimit { remaining cost }
}
"""

UPDATE_ITEM_NUMBER_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $value: Float!) {
    updateProjectV2ItemFieldValue(input: {
        projectId: $projectId
        itemId: $itemId
        fieldId: $fieldId
        value: { number: $value }
    }) {
        projectV2Item {
            id
        }
    }
}
"""
