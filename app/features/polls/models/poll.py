from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class Poll(BaseModel):
    __tablename__ = "polls"

    question = Column(String(500), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    options = relationship(
        "PollOption",
        back_populates="poll",
        order_by="PollOption.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PollOption(BaseModel):
    __tablename__ = "poll_options"
    # target of the composite key on poll_votes
    __table_args__ = (UniqueConstraint("id", "poll_id", name="uq_poll_options_id_poll"),)

    poll_id = Column(String(36), ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String(500), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    poll = relationship("Poll", back_populates="options")


class PollVote(BaseModel):
    """
    One row per (user, poll). The composite foreign key makes the database
    reject an option that belongs to a different poll.
    """

    __tablename__ = "poll_votes"
    __table_args__ = (
        UniqueConstraint("user_id", "poll_id", name="uq_poll_votes_user_poll"),
        ForeignKeyConstraint(
            ["option_id", "poll_id"],
            ["poll_options.id", "poll_options.poll_id"],
            ondelete="CASCADE",
            name="fk_poll_votes_option_poll",
        ),
    )

    poll_id = Column(String(36), ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    option_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
