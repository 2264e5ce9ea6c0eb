# ruff: noqa: TC001
from __future__ import annotations

from fastapi import APIRouter

from approvalflow.api.deps import ContextDep
from approvalflow.db import SessionDep
from approvalflow.models.enums import ActorType
from approvalflow.schemas.command import CommandEnvelope, CommandResult
from approvalflow.services.commands import dispatch

commands_router = APIRouter(
    prefix="/commands",
    tags=["commands"],
)


@commands_router.post("", response_model=CommandResult)
async def run_command(envelope: CommandEnvelope, session: SessionDep, ctx: ContextDep) -> CommandResult:
    """Run a typed command issued by the chat agent on the caller's behalf.

    Audit entries written by the command are attributed to the agent.
    """
    agent_ctx = ctx.model_copy(update={"actor_type": ActorType.AI_AGENT})
    return await dispatch(session, agent_ctx, envelope.payload)
