"""Coach service — one chat turn from request messages to ChatResponse."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

import httpx

from contracts.api import ChatResponse, Message, Role, StreamChunk, TraceMeta
from contracts.config import GateConfig
from contracts.envelope import PLAN_UPGRADE_MESSAGE, ToolResult
from contracts.model import ModelAdapter
from contracts.store import DataStore
from contracts.tool_sdk import ManifestEntry, ToolContext, UserRole

from coachgate.context import create_context
from coachgate.dispatcher import ToolDispatcher
from coachgate.feature_flags import should_use_tool_calling
from coachgate.policy import RolePolicyEngine
from coachgate.tool_router import TurnOutcome, TurnRouter
from coachgate.tools.registry import ToolSet, athlete_tool_set, coach_tool_set

logger = logging.getLogger(__name__)

COACH_SYSTEM_PROMPT = """You are an AI fitness coach: knowledgeable, supportive and conversational.

You have tools that read the user's own data. Use them before answering questions about:
- Their profile, goals and preferences (getUserProfile, getUserPreferences)
- Recent training and personal records (getRecentWorkouts, getPersonalRecords)
- Injuries (getActiveInjuries)
- Volume and progress analytics (getVolumeAnalytics, getProgressTrends)
When the user reports a set they just did, record it with logWorkoutSet.

Keep answers to 2-4 sentences unless detail is requested. Reference specific
numbers from tool results and never make data up. If a tool returns an error,
acknowledge it plainly. For medical concerns, recommend a professional."""

# Appended for coaches only.
COACH_TOOLS_PROMPT = """

You also look after clients. For questions about them use getClientList,
getClientProfile, getClientWorkouts and getAtRiskClients."""

ROLLOUT_DISABLED_MESSAGE = "Tool calling is not enabled for this user. Please use the legacy coach."

MODEL_UNAVAILABLE_MESSAGE = (
    "I'm having trouble reaching my coaching brain right now. Please try again in a moment."
)

_INTENT_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("Workout", "PersonalRecord"), "workout"),
    (("Injur",), "recovery"),
    (("Analytics", "Trends"), "analytics"),
    (("Client",), "coach"),
]


def extract_intent(tools_used: list[str]) -> str:
    """Coarse intent label from the first tool the model reached for."""
    if not tools_used:
        return "general_fitness"
    first = tools_used[0]
    for keywords, intent in _INTENT_KEYWORDS:
        if any(k in first for k in keywords):
            return intent
    return "general_fitness"


def tool_sets_for(role: UserRole) -> list[ToolSet]:
    """Tool sets offered to a role: everyone gets the athlete set, coaches add theirs."""
    sets = [athlete_tool_set()]
    if role == UserRole.COACH:
        sets.append(coach_tool_set())
    return sets


class CoachService:
    """Runs chat turns against a DataStore and a ModelAdapter."""

    def __init__(self, store: DataStore, adapter: ModelAdapter, config: GateConfig) -> None:
        self.store = store
        self.adapter = adapter
        self.config = config
        self._policy = RolePolicyEngine()

    def system_prompt_for(self, role: UserRole) -> str:
        """Configured (or default) prompt; coaches also hear about their client tools."""
        prompt = self.config.agent.system_prompt or COACH_SYSTEM_PROMPT
        if role == UserRole.COACH:
            prompt += COACH_TOOLS_PROMPT
        return prompt

    def _dispatcher(self, ctx: ToolContext) -> ToolDispatcher:
        return ToolDispatcher.for_turn(ctx, *tool_sets_for(ctx.role), policy=self._policy)

    def _router(self, model: str) -> TurnRouter:
        return TurnRouter(
            self.adapter,
            model,
            max_steps=self.config.agent.max_steps,
            tool_choice=self.config.agent.tool_choice,
        )

    def build_messages(self, messages: list[Message], role: UserRole) -> list[Message]:
        """System prompt + trimmed history + the latest message.

        Caller-supplied system messages are dropped.
        """
        convo = [m for m in messages if m.role != Role.SYSTEM]
        if convo:
            limit = self.config.agent.history_limit
            history = convo[:-1][-limit:] if limit else []
            convo = history + convo[-1:]
        return [Message(role=Role.SYSTEM, content=self.system_prompt_for(role)), *convo]

    async def process_message(
        self, user_id: str, messages: list[Message], model: str | None = None
    ) -> ChatResponse:
        model = model or self.config.models.default
        response_id = _response_id()

        if not should_use_tool_calling(user_id, self.config.rollout):
            logger.info("Tool calling not enabled for user=%s", user_id)
            return _rollout_disabled(response_id, model)

        ctx = await create_context(self.store, user_id)
        router = self._router(model)

        try:
            outcome = await router.run(self.build_messages(messages, ctx.role), self._dispatcher(ctx))
        except httpx.HTTPError:
            logger.exception("Model call failed (turn=%s, user=%s)", ctx.turn_id, user_id)
            return _model_unavailable(response_id, model, ctx)

        return self._respond(response_id, model, ctx, outcome)

    async def stream_message(
        self, user_id: str, messages: list[Message], model: str | None = None
    ) -> AsyncIterator[StreamChunk]:
        """Run one turn, yielding text deltas and then a chunk with the final response.

        The last chunk always carries ``final``, including when tool calling is
        disabled for the user or the model cannot be reached.
        """
        model = model or self.config.models.default
        response_id = _response_id()

        if not should_use_tool_calling(user_id, self.config.rollout):
            logger.info("Tool calling not enabled for user=%s", user_id)
            yield StreamChunk(final=_rollout_disabled(response_id, model))
            return

        ctx = await create_context(self.store, user_id)
        router = self._router(model)

        try:
            conversation = self.build_messages(messages, ctx.role)
            async for text in router.stream(conversation, self._dispatcher(ctx)):
                yield StreamChunk(chunk=text)
        except httpx.HTTPError:
            logger.exception("Model stream failed (turn=%s, user=%s)", ctx.turn_id, user_id)
            yield StreamChunk(final=_model_unavailable(response_id, model, ctx))
            return

        yield StreamChunk(final=self._respond(response_id, model, ctx, router.outcome))

    def _respond(
        self, response_id: str, model: str, ctx: ToolContext, outcome: TurnOutcome
    ) -> ChatResponse:
        notices = [PLAN_UPGRADE_MESSAGE] if outcome.permission_denied else []
        logger.info(
            "Turn %s done: user=%s role=%s steps=%d tools=%s finish=%s",
            ctx.turn_id,
            ctx.user_id,
            ctx.role.value,
            outcome.steps,
            outcome.tools_used,
            outcome.finish_reason,
        )

        return ChatResponse(
            id=response_id,
            model=model,
            message=Message(role=Role.ASSISTANT, content=outcome.message.content or ""),
            notices=notices,
            trace=TraceMeta(
                turn_id=ctx.turn_id,
                role=ctx.role.value,
                tools_used=outcome.tools_used,
                terminal_tools=outcome.terminal_tools,
                steps=outcome.steps,
                finish_reason=outcome.finish_reason,
                intent=extract_intent(outcome.tools_used),
                model=model,
            ),
        )

    async def manifest_for(self, user_id: str) -> list[ManifestEntry]:
        ctx = await create_context(self.store, user_id)
        return self._dispatcher(ctx).get_manifest()

    async def dispatch_for(self, user_id: str, tool_name: str, raw_args: Any = None) -> ToolResult:
        ctx = await create_context(self.store, user_id)
        return await self._dispatcher(ctx).dispatch(tool_name, raw_args)


def _response_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex[:12]}"


def _rollout_disabled(response_id: str, model: str) -> ChatResponse:
    return ChatResponse(
        id=response_id,
        model=model,
        message=Message(role=Role.ASSISTANT, content=ROLLOUT_DISABLED_MESSAGE),
        trace=TraceMeta(turn_id="", intent="system", model=model),
    )


def _model_unavailable(response_id: str, model: str, ctx: ToolContext) -> ChatResponse:
    return ChatResponse(
        id=response_id,
        model=model,
        message=Message(role=Role.ASSISTANT, content=MODEL_UNAVAILABLE_MESSAGE),
        trace=TraceMeta(
            turn_id=ctx.turn_id,
            role=ctx.role.value,
            finish_reason="model_error",
            model=model,
        ),
    )
