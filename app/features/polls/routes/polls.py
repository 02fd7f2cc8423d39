from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.routes.auth import get_current_user, get_optional_user, require_admin
from app.features.polls.schemas.poll import PollCreate, PollStatusUpdate, VoteRequest
from app.features.polls.services.poll_service import PollService
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/polls", tags=["Polls"])


@router.get("", response_model=dict, summary="List active polls")
async def list_polls(
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    polls = await PollService(db).list_active_polls(current_user.id if current_user else None)
    return api_response(data=polls, message="Polls retrieved successfully")


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Create a poll")
async def create_poll(
    request: PollCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Admin only. Needs a question and at least two options."""
    poll = await PollService(db).create_poll(request.poll_question, request.options)
    return api_response(data=poll, message="Poll created successfully", status_code=status.HTTP_201_CREATED)


@router.get("/{poll_id}", response_model=dict, summary="Get a poll")
async def get_poll(
    poll_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    poll = await PollService(db).get_poll(poll_id, current_user.id if current_user else None)
    return api_response(data=poll, message="Poll retrieved successfully")


@router.post("/{poll_id}/vote", response_model=dict, summary="Vote in a poll")
async def vote(
    poll_id: str,
    request: VoteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await PollService(db).vote(current_user.id, poll_id, request.vote_id)
    return api_response(message="Vote recorded successfully")


@router.get("/{poll_id}/results", response_model=dict, summary="Poll results")
async def poll_results(poll_id: str, db: AsyncSession = Depends(get_db)):
    results = await PollService(db).get_results(poll_id)
    return api_response(data=results, message="Poll results retrieved successfully")


@router.put("/{poll_id}/status", response_model=dict, summary="Open or close a poll")
async def update_poll_status(
    poll_id: str,
    request: PollStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    poll = await PollService(db).update_status(poll_id, request.is_active)
    message = f"Poll {'activated' if poll.is_active else 'deactivated'} successfully"
    return api_response(data=poll, message=message)
