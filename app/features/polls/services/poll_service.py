from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.polls.models.poll import Poll, PollOption, PollVote
from app.features.polls.schemas.poll import (
    PollOptionResponse,
    PollResponse,
    PollResultRow,
    PollResults,
)
from app.platform.exceptions import ConflictError, NotFoundError, ValidationError
from app.platform.logger import get_logger

logger = get_logger("poll_service")


class PollService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active_polls(self, user_id: Optional[str] = None) -> List[PollResponse]:
        result = await self.db.execute(
            select(Poll).where(Poll.is_active.is_(True)).order_by(Poll.created_at.desc())
        )
        polls = result.scalars().all()
        return [await self._describe(poll, user_id) for poll in polls]

    async def create_poll(self, question: Optional[str], options: Optional[List[Any]]) -> PollResponse:
        texts = [str(option).strip() for option in options or [] if str(option).strip()]
        if not question or not question.strip() or not isinstance(options, list) or len(texts) < 2:
            raise ValidationError("Invalid poll question or options")

        poll = Poll(question=question.strip(), is_active=True)
        poll.options = [PollOption(text=text, position=index) for index, text in enumerate(texts)]
        self.db.add(poll)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Poll {poll.id} created with {len(texts)} options")
        return await self._describe(poll, None)

    async def get_poll(self, poll_id: str, user_id: Optional[str] = None) -> PollResponse:
        poll = await self.db.get(Poll, poll_id)
        if poll is None:
            raise NotFoundError("Poll not found")
        return await self._describe(poll, user_id)

    async def vote(self, user_id: str, poll_id: str, option_id: Any) -> None:
        """
        Record the user's single vote in an active poll.

        Raises:
            ValidationError: option missing or belonging to another poll
            NotFoundError: poll missing or closed
            ConflictError: the user already voted in this poll
        """
        if option_id in (None, ""):
            raise ValidationError("Vote ID is required")
        option_id = str(option_id)

        poll_result = await self.db.execute(
            select(Poll.id).where(Poll.id == poll_id, Poll.is_active.is_(True))
        )
        if poll_result.scalar_one_or_none() is None:
            raise NotFoundError("Poll not found or not active")

        option_result = await self.db.execute(
            select(PollOption.id).where(PollOption.id == option_id, PollOption.poll_id == poll_id)
        )
        if option_result.scalar_one_or_none() is None:
            raise ValidationError("Invalid vote option")

        if await self._has_voted(poll_id, user_id):
            raise ConflictError("You have already voted on this poll")

        self.db.add(PollVote(poll_id=poll_id, option_id=option_id, user_id=user_id))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("You have already voted on this poll")

        logger.info(f"User {user_id} voted in poll {poll_id}")

    async def get_results(self, poll_id: str) -> PollResults:
        poll = await self.db.get(Poll, poll_id)
        if poll is None:
            raise NotFoundError("Poll not found")

        counts = await self._option_counts([poll_id])
        options = await self._options(poll_id)
        total = sum(counts.get(option.id, 0) for option in options)

        rows = [
            PollResultRow(
                id=option.id,
                text=option.text,
                vote_count=counts.get(option.id, 0),
                percentage=round(counts.get(option.id, 0) / total * 100, 1) if total else 0.0,
            )
            for option in options
        ]
        rows.sort(key=lambda row: row.vote_count, reverse=True)
        return PollResults(poll_id=poll_id, results=rows, total_votes=total)

    async def update_status(self, poll_id: str, is_active: Any) -> PollResponse:
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")

        poll = await self.db.get(Poll, poll_id)
        if poll is None:
            raise NotFoundError("Poll not found")

        poll.is_active = is_active
        await self.db.commit()
        logger.info(f"Poll {poll_id} {'activated' if is_active else 'deactivated'}")
        return await self._describe(poll, None)

    async def _describe(self, poll: Poll, user_id: Optional[str]) -> PollResponse:
        options = await self._options(poll.id)
        counts = await self._option_counts([poll.id])

        user_vote = None
        if user_id:
            vote_result = await self.db.execute(
                select(PollVote.option_id).where(PollVote.poll_id == poll.id, PollVote.user_id == user_id)
            )
            user_vote = vote_result.scalar_one_or_none()

        return PollResponse(
            id=poll.id,
            question=poll.question,
            is_active=poll.is_active,
            created_at=poll.created_at,
            total_votes=sum(counts.values()),
            options=[
                PollOptionResponse(id=option.id, text=option.text, vote_count=counts.get(option.id, 0))
                for option in options
            ],
            user_has_voted=user_vote is not None,
            user_vote=user_vote,
        )

    async def _has_voted(self, poll_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            select(PollVote.id).where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def _options(self, poll_id: str) -> List[PollOption]:
        result = await self.db.execute(
            select(PollOption).where(PollOption.poll_id == poll_id).order_by(PollOption.position)
        )
        return list(result.scalars().all())

    async def _option_counts(self, poll_ids: List[str]) -> Dict[str, int]:
        result = await self.db.execute(
            select(PollVote.option_id, func.count(PollVote.id))
            .where(PollVote.poll_id.in_(poll_ids))
            .group_by(PollVote.option_id)
        )
        return {option_id: count for option_id, count in result.all()}
