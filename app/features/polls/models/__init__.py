from app.features.polls.models.poll import Poll, PollOption, PollVote

__all__ = ["Poll", "PollOption", "PollVote"]
