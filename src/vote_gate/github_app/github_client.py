"""GitHub API client for posting comments and managing check runs."""

import logging
import time
import jwt
import requests
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timedelta, timezone

from ..errors import ConfigurationError, GitHubAPIError, GitHubAuthError
from ..utils.schema import CheckConclusion, CheckStatus

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GitHubClient:
    """GitHub API client for GitHub App operations."""

    def __init__(
        self,
        app_id: Optional[str] = None,
        private_key: Optional[str] = None,
        base_url: str = "https://api.github.com",
        timeout: int = 10,
    ):
        """Initialize GitHub client.

        Args:
            app_id: GitHub App ID
            private_key: GitHub App private key (PEM format). Literal ``\\n``
                sequences are turned into newlines so the key can live in a
                single-line environment variable.
            base_url: REST API root
            timeout: Per-request timeout in seconds
        """
        self.app_id = str(app_id) if app_id else None

        # Replace literal \n with actual newlines
        self.private_key = private_key.replace("\\n", "\n") if private_key else None

        if not self.app_id or not self.private_key:
            raise ConfigurationError(
                "GitHub App credentials not configured. "
                "Set GITHUB_APP_ID and GITHUB_APP_PRIVATE_KEY environment variables."
            )

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._installation_tokens: Dict[int, Tuple[str, datetime]] = {}
        self._repo_installations: Dict[str, int] = {}

    def _generate_jwt(self) -> str:
        """Generate JWT for GitHub App authentication.

        Returns:
            JWT token string
        """
        now = int(time.time())
        payload = {
            "iat": now - 60,  # Issued 60 seconds in the past to account for clock drift
            "exp": now + (10 * 60),  # Expires in 10 minutes
            "iss": self.app_id,
        }

        return jwt.encode(payload, self.private_key, algorithm="RS256")

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
        }

    @staticmethod
    def _raise_for_status(response: requests.Response, action: str) -> None:
        if response.ok:
            return
        raise GitHubAPIError(
            f"GitHub API error while {action}: "
            f"{response.status_code} {response.text}",
            status_code=response.status_code,
        )

    def get_repo_installation(self, owner: str, repo: str) -> int:
        """Look up the app's installation ID for a repository (cached).

        Args:
            owner: Repository owner login
            repo: Repository name

        Returns:
            Installation ID
        """
        repo_full_name = f"{owner}/{repo}"
        if repo_full_name in self._repo_installations:
            return self._repo_installations[repo_full_name]

        response = requests.get(
            f"{self.base_url}/repos/{repo_full_name}/installation",
            headers=self._headers(self._generate_jwt()),
            timeout=self.timeout,
        )
        self._raise_for_status(response, f"looking up installation for {repo_full_name}")

        installation_id = response.json()["id"]
        self._repo_installations[repo_full_name] = installation_id
        return installation_id

    def get_installation_token(self, installation_id: int) -> str:
        """Get installation access token (cached for 1 hour).

        Args:
            installation_id: GitHub App installation ID

        Returns:
            Installation access token
        """
        # Check if we have a cached token that's still valid
        if installation_id in self._installation_tokens:
            token, expires_at = self._installation_tokens[installation_id]
            if datetime.now(timezone.utc) < expires_at - timedelta(minutes=5):
                return token

        jwt_token = self._generate_jwt()
        url = f"{self.base_url}/app/installations/{installation_id}/access_tokens"

        response = requests.post(
            url,
            headers=self._headers(jwt_token),
            timeout=self.timeout,
        )

        if response.status_code == 401:
            raise GitHubAuthError(
                f"GitHub App authentication failed (401 Unauthorized). "
                f"Please check:\n"
                f"1. GITHUB_APP_ID is correct: {self.app_id}\n"
                f"2. Private key matches the GitHub App\n"
                f"3. App is installed for installation_id: {installation_id}\n"
                f"Response: {response.text}",
                status_code=401,
            )

        self._raise_for_status(response, f"creating token for installation {installation_id}")

        data = response.json()
        token = data["token"]
        expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))

        self._installation_tokens[installation_id] = (token, expires_at)

        return token

    def _installation_headers(
        self,
        owner: str,
        repo: str,
        installation_id: Optional[int],
    ) -> Dict[str, str]:
        if installation_id is None:
            installation_id = self.get_repo_installation(owner, repo)
        return self._headers(self.get_installation_token(installation_id))

    def post_comment(
        self,
        owner: str,
        repo: str,
        number: int,
        body: str,
        installation_id: Optional[int] = None,
    ) -> int:
        """Post a comment on a pull request or issue as the app installation.

        Args:
            owner: Repository owner login
            repo: Repository name
            number: Pull request or issue number
            body: Comment body (markdown)
            installation_id: Installation ID; looked up from the repo if omitted

        Returns:
            Comment ID
        """
        headers = self._installation_headers(owner, repo, installation_id)
        url = f"{self.base_url}/repos/{owner}/{repo}/issues/{number}/comments"

        response = requests.post(
            url,
            headers=headers,
            json={"body": body},
            timeout=self.timeout,
        )
        self._raise_for_status(response, f"commenting on {owner}/{repo}#{number}")

        return response.json()["id"]

    @staticmethod
    def _output(title: Optional[str], summary: Optional[str]) -> Optional[Dict[str, str]]:
        # GitHub requires both keys once output is sent
        if not (title or summary):
            return None
        return {"title": title or "", "summary": summary or ""}

    def create_check_run(
        self,
        owner: str,
        repo: str,
        head_sha: str,
        name: str,
        status: CheckStatus = CheckStatus.QUEUED,
        title: Optional[str] = None,
        summary: Optional[str] = None,
        installation_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a GitHub check run.

        Args:
            owner: Repository owner login
            repo: Repository name
            head_sha: Git commit SHA
            name: Check run name
            status: Initial status ("queued" or "in_progress")
            title: Output title
            summary: Output summary (markdown)
            installation_id: Installation ID; looked up from the repo if omitted

        Returns:
            API response with check run ID
        """
        headers = self._installation_headers(owner, repo, installation_id)
        url = f"{self.base_url}/repos/{owner}/{repo}/check-runs"

        data: Dict[str, Any] = {
            "name": name,
            "head_sha": head_sha,
            "status": CheckStatus(status).value,
        }

        output = self._output(title, summary)
        if output:
            data["output"] = output

        response = requests.post(
            url,
            headers=headers,
            json=data,
            timeout=self.timeout,
        )
        self._raise_for_status(response, f"creating check run on {owner}/{repo}@{head_sha}")

        return response.json()

    def update_check_run(
        self,
        owner: str,
        repo: str,
        check_run_id: int,
        status: CheckStatus,
        conclusion: Optional[CheckConclusion] = None,
        title: Optional[str] = None,
        summary: Optional[str] = None,
        installation_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Update a GitHub check run.

        Args:
            owner: Repository owner login
            repo: Repository name
            check_run_id: Check run ID
            status: New status ("queued", "in_progress", "completed")
            conclusion: Required by GitHub when completing
            title: Output title
            summary: Output summary (markdown)
            installation_id: Installation ID; looked up from the repo if omitted

        Returns:
            API response
        """
        status = CheckStatus(status)
        headers = self._installation_headers(owner, repo, installation_id)
        url = f"{self.base_url}/repos/{owner}/{repo}/check-runs/{check_run_id}"

        data: Dict[str, Any] = {"status": status.value}

        if status == CheckStatus.IN_PROGRESS:
            data["started_at"] = _utc_now_iso()
        elif status == CheckStatus.COMPLETED:
            data["completed_at"] = _utc_now_iso()

        if conclusion:
            data["conclusion"] = CheckConclusion(conclusion).value

        output = self._output(title, summary)
        if output:
            data["output"] = output

        response = requests.patch(
            url,
            headers=headers,
            json=data,
            timeout=self.timeout,
        )
        self._raise_for_status(response, f"updating check run {check_run_id} on {owner}/{repo}")

        return response.json()
