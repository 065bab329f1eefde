"""Label-driven vote workflow: comments plus check run bookkeeping.

Each handler posts a comment on the pull request and then moves the commit's
check runs along queued -> in_progress -> completed, both on GitHub and in
the local check store. Failed GitHub calls are logged, never retried.
"""

import asyncio
import logging
from typing import List, Optional

from .check_store import CheckStore
from .comment_formatter import CommentFormatter
from .github_client import GitHubClient
from ..utils.schema import (
    CheckConclusion,
    CheckRun,
    CheckStatus,
    PullRequestLabelEvent,
    is_forward_transition,
)

logger = logging.getLogger(__name__)


class VoteWorkflow:
    """Coordinates GitHub API calls with the local check run store."""

    def __init__(
        self,
        github_client: GitHubClient,
        check_store: CheckStore,
        check_name: str = "Legislation Vote",
        vote_required_label: str = "vote-required",
        vote_start_label: str = "vote-start",
        vote_duration_hours: int = 48,
    ):
        self.github_client = github_client
        self.check_store = check_store
        self.check_name = check_name
        self.vote_required_label = vote_required_label
        self.vote_start_label = vote_start_label
        self.formatter = CommentFormatter(
            vote_start_label=vote_start_label,
            vote_duration_hours=vote_duration_hours,
        )

    async def _resolve_installation(
        self, owner: str, repo: str, installation_id: Optional[int]
    ) -> int:
        if installation_id is not None:
            return installation_id
        return await asyncio.to_thread(self.github_client.get_repo_installation, owner, repo)

    async def post_comment(
        self,
        owner: str,
        repo: str,
        number: int,
        body: str,
        installation_id: Optional[int] = None,
    ) -> int:
        comment_id = await asyncio.to_thread(
            self.github_client.post_comment,
            owner,
            repo,
            number,
            body,
            installation_id=installation_id,
        )
        logger.info(f"Posted comment {comment_id} on {owner}/{repo}#{number}")
        return comment_id

    async def queue_check(
        self,
        owner: str,
        repo: str,
        name: str,
        head_sha: str,
        installation_id: Optional[int] = None,
    ) -> CheckRun:
        """Create a queued check run on GitHub and record it.

        Returns:
            The stored check run
        """
        title, summary = self.formatter.queued_check_output()
        response = await asyncio.to_thread(
            self.github_client.create_check_run,
            owner,
            repo,
            head_sha,
            name,
            status=CheckStatus.QUEUED,
            title=title,
            summary=summary,
            installation_id=installation_id,
        )

        run = await asyncio.to_thread(
            self.check_store.create_check_run,
            owner=owner,
            repo=repo,
            check_run_id=response["id"],
            head_sha=head_sha,
        )
        logger.info(f"Queued check run {run.check_run_id} '{name}' on {owner}/{repo}@{head_sha[:7]}")
        return run

    async def _transition(
        self,
        owner: str,
        repo: str,
        runs: List[CheckRun],
        status: CheckStatus,
        conclusion: Optional[CheckConclusion],
        title: str,
        summary: str,
        installation_id: Optional[int],
    ) -> List[CheckRun]:
        """Update every run on GitHub concurrently, then record the successes."""
        runs = [run for run in runs if is_forward_transition(run.status, status)]
        if not runs:
            return []

        # Resolve once and warm the token cache so parallel calls share one token
        installation_id = await self._resolve_installation(owner, repo, installation_id)
        await asyncio.to_thread(self.github_client.get_installation_token, installation_id)

        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self.github_client.update_check_run,
                    owner,
                    repo,
                    run.check_run_id,
                    status,
                    conclusion=conclusion,
                    title=title,
                    summary=summary,
                    installation_id=installation_id,
                )
                for run in runs
            ),
            return_exceptions=True,
        )

        updated_ids = []
        for run, result in zip(runs, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Failed to update check run {run.check_run_id} on "
                    f"{owner}/{repo} to {status.value}: {result}"
                )
            else:
                updated_ids.append(run.check_run_id)

        return await asyncio.to_thread(
            self.check_store.update_multiple_check_runs_status,
            updated_ids, status, conclusion,
        )

    async def start_checks(
        self,
        owner: str,
        repo: str,
        head_sha: str,
        installation_id: Optional[int] = None,
    ) -> List[CheckRun]:
        """Move every queued check run on a commit to in_progress."""
        runs = await asyncio.to_thread(self.check_store.get_queued_checks, owner, repo, head_sha)
        title, summary = self.formatter.in_progress_check_output()
        updated = await self._transition(
            owner, repo, runs, CheckStatus.IN_PROGRESS, None,
            title, summary, installation_id,
        )
        logger.info(f"Started {len(updated)}/{len(runs)} check runs on {owner}/{repo}@{head_sha[:7]}")
        return updated

    async def complete_all_checks(
        self,
        owner: str,
        repo: str,
        head_sha: str,
        conclusion: CheckConclusion,
        installation_id: Optional[int] = None,
    ) -> List[CheckRun]:
        """Complete every queued or in-progress check run on a commit."""
        conclusion = CheckConclusion(conclusion)
        runs = await asyncio.to_thread(self.check_store.get_active_checks, owner, repo, head_sha)
        title, summary = self.formatter.completed_check_output(conclusion)
        updated = await self._transition(
            owner, repo, runs, CheckStatus.COMPLETED, conclusion,
            title, summary, installation_id,
        )
        logger.info(
            f"Completed {len(updated)}/{len(runs)} check runs on "
            f"{owner}/{repo}@{head_sha[:7]} as {conclusion.value}"
        )
        return updated

    async def handle_labeled(self, event: PullRequestLabelEvent) -> None:
        if event.label == self.vote_required_label:
            await self.post_comment(
                event.owner, event.repo, event.number,
                self.formatter.format_vote_required_comment(),
                installation_id=event.installation_id,
            )
            await self.queue_check(
                event.owner, event.repo, self.check_name, event.head_sha,
                installation_id=event.installation_id,
            )
        elif event.label == self.vote_start_label:
            await self.post_comment(
                event.owner, event.repo, event.number,
                self.formatter.format_vote_started_comment(),
                installation_id=event.installation_id,
            )
            await self.start_checks(
                event.owner, event.repo, event.head_sha,
                installation_id=event.installation_id,
            )
        else:
            logger.debug(f"Ignoring label '{event.label}' on {event.repo_full_name}#{event.number}")

    async def handle_unlabeled(self, event: PullRequestLabelEvent) -> None:
        if event.label in (self.vote_required_label, self.vote_start_label):
            await self.post_comment(
                event.owner, event.repo, event.number,
                self.formatter.format_vote_cancelled_comment(),
                installation_id=event.installation_id,
            )
            await self.complete_all_checks(
                event.owner, event.repo, event.head_sha,
                CheckConclusion.CANCELLED,
                installation_id=event.installation_id,
            )
        else:
            logger.debug(f"Ignoring removed label '{event.label}' on {event.repo_full_name}#{event.number}")

    async def handle_event(self, event: PullRequestLabelEvent) -> None:
        """Dispatch a pull_request label event by action."""
        if event.action == "labeled":
            await self.handle_labeled(event)
        elif event.action == "unlabeled":
            await self.handle_unlabeled(event)
