"""GitHub App integration for Vote Gate.

Provides webhook handling, check run tracking and PR comments for the
label-driven voting workflow on GitHub Pull Requests.
"""

from .webhook_handler import app as webhook_app
from .check_store import CheckStore
from .github_client import GitHubClient
from .vote_workflow import VoteWorkflow

__all__ = ["webhook_app", "CheckStore", "GitHubClient", "VoteWorkflow"]
