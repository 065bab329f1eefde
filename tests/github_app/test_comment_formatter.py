"""Tests for vote comment text"""

from vote_gate.github_app.comment_formatter import CommentFormatter
from vote_gate.utils.schema import CheckConclusion


def test_default_comments():
    formatter = CommentFormatter()

    assert formatter.format_vote_required_comment() == (
        "Voting is required for this PR - a vote will be started when "
        "someone labels it `vote-start`."
    )
    assert formatter.format_vote_started_comment() == (
        "Vote started! Use 👍 / 👎 reactions to cast your vote. "
        "Voting will last 48 hours."
    )
    assert formatter.format_vote_cancelled_comment() == "Voting has been cancelled for this PR."


def test_check_outputs():
    formatter = CommentFormatter(vote_start_label="open-vote", vote_duration_hours=12)

    assert "`open-vote`" in formatter.queued_check_output()[1]
    assert "12 hours" in formatter.in_progress_check_output()[1]
    assert formatter.completed_check_output(CheckConclusion.CANCELLED)[0] == "Vote cancelled"
    assert formatter.completed_check_output("success") == (
        "Vote success",
        "Voting finished with conclusion `success`.",
    )
