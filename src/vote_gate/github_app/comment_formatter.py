"""PR comment and check run text for each step of a vote."""

from typing import Tuple

from ..utils.schema import CheckConclusion


class CommentFormatter:
    """Formats the comments and check run output posted during a vote."""

    def __init__(
        self,
        vote_start_label: str = "vote-start",
        vote_duration_hours: int = 48,
    ):
        """Initialize formatter.

        Args:
            vote_start_label: Label that starts a vote, quoted in the intro comment
            vote_duration_hours: Advertised length of a vote
        """
        self.vote_start_label = vote_start_label
        self.vote_duration_hours = vote_duration_hours

    def format_vote_required_comment(self) -> str:
        return (
            "Voting is required for this PR - a vote will be started when "
            f"someone labels it `{self.vote_start_label}`."
        )

    def format_vote_started_comment(self) -> str:
        return (
            "Vote started! Use 👍 / 👎 reactions to cast your vote. "
            f"Voting will last {self.vote_duration_hours} hours."
        )

    def format_vote_cancelled_comment(self) -> str:
        return "Voting has been cancelled for this PR."

    def queued_check_output(self) -> Tuple[str, str]:
        """Title and summary for a freshly queued check run."""
        return (
            "Waiting for vote",
            f"A vote has not started yet. Add the `{self.vote_start_label}` "
            "label to open voting.",
        )

    def in_progress_check_output(self) -> Tuple[str, str]:
        """Title and summary while voting is open."""
        return (
            "Vote in progress",
            "Cast your vote with 👍 / 👎 reactions on the vote comment. "
            f"Voting lasts {self.vote_duration_hours} hours.",
        )

    def completed_check_output(self, conclusion: str) -> Tuple[str, str]:
        """Title and summary for a check run completed with ``conclusion``."""
        conclusion = CheckConclusion(conclusion).value
        if conclusion == "cancelled":
            return ("Vote cancelled", "Voting was cancelled for this PR.")
        return (f"Vote {conclusion}", f"Voting finished with conclusion `{conclusion}`.")
