"""Type definitions for GitHub API responses."""

from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ValidationError

# GraphQL response types with Pydantic models
class StatusCheckRollup(BaseModel):
    state: str

class PRCommitNode(BaseModel):
    oid: str
    messageHeadline: str
    messageBody: str = ""
    statusCheckRollup: Optional[StatusCheckRollup] = None

class PRCommitData(BaseModel):
    commit: PRCommitNode

class PRCommits(BaseModel):
    nodes: List[PRCommitData]

class RepositoryRef(BaseModel):
    id: str

class PRNode(BaseModel):
    id: str
    number: int
    title: str
    body: str = ""
    baseRefName: str
    headRefName: str
    mergeable: Optional[str] = None
    reviewDecision: Optional[str] = None
    repository: RepositoryRef
    commits: PRCommits

class PRNodes(BaseModel):
    nodes: List[PRNode]

class Viewer(BaseModel):
    login: str
    pullRequests: PRNodes

class GraphQLData(BaseModel):
    viewer: Viewer
    repository: RepositoryRef

class GraphQLErrorLocation(BaseModel):
    line: int
    column: int

class GraphQLError(BaseModel):
    message: str
    locations: Optional[List[GraphQLErrorLocation]] = None
    path: Optional[List[Union[str, int]]] = None
    extensions: Optional[Dict[str, object]] = None

class GraphQLResponse(BaseModel):
    data: Optional[GraphQLData] = None
    errors: Optional[List[GraphQLError]] = None

PULL_REQUESTS_QUERY = """
query PullRequests($repoOwner: String!, $repoName: String!) {
  viewer {
    login
    pullRequests(first: 100, states: [OPEN]) {
      nodes {
        id
        number
        title
        body
        baseRefName
        headRefName
        mergeable
        reviewDecision
        repository {
          id
        }
        commits(last: 1) {
          nodes {
            commit {
              oid
              messageHeadline
              messageBody
              statusCheckRollup {
                state
              }
            }
          }
        }
      }
    }
  }
  repository(owner: $repoOwner, name: $repoName) {
    id
  }
}
"""

def parse_graphql_response(response: Dict[str, object]) -> GraphQLData:
    """Parse a GraphQL response into Pydantic models.

    Raises:
        TypeError: If the response has errors and no data, or does not match
            the expected shape.
    """
    try:
        parsed = GraphQLResponse.model_validate(response)
    except ValidationError as e:
        raise TypeError(f"Invalid GraphQL response: {e}") from e
    if parsed.data is None:
        messages = "; ".join(err.message for err in parsed.errors or [])
        raise TypeError(f"GraphQL query returned no data: {messages or 'unknown error'}")
    return parsed.data
