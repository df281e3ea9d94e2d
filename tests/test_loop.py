"""
Tests for the execution loop.
"""

import time

import pytest

from jyotish_agent.agent.loop import INCONCLUSIVE_ANSWER, ExecutionLoop
from jyotish_agent.agent.tools_executor import ToolExecutor
from jyotish_agent.deadline import Deadline
from jyotish_agent.errors import DeadlineExceeded, ModelCallError
from jyotish_agent.models import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ROLE_USER,
    STATUS_COMPLETE,
    STATUS_INCONCLUSIVE,
    ConversationState,
    Turn,
)
from jyotish_agent.tools.factory import build_registry
from jyotish_agent.tools.result_log import ToolResultLog

from tests.fakes import (
    DASHA,
    FakeCalculationService,
    ScriptedModel,
    StubbornModel,
    make_calculation_client,
    text_reply,
    tool_reply,
)


def _state(message: str = "When will I get married?") -> ConversationState:
    return ConversationState(instructions="You are 'Rishi'.", turns=[Turn.user(message)])


@pytest.mark.asyncio
async def test_direct_answer_takes_one_model_call(user, calculation_client, service):
    model = ScriptedModel([text_reply("Namaste! A yoga is a planetary combination.")])
    state = _state("What is a yoga?")

    outcome = await ExecutionLoop(model).run(state, build_registry(user, calculation_client))

    assert outcome.status == STATUS_COMPLETE
    assert outcome.answer == "Namaste! A yoga is a planetary combination."
    assert outcome.iterations == 0
    assert len(model.calls) == 1
    assert [turn.role for turn in state.turns] == [ROLE_USER, ROLE_ASSISTANT]
    assert service.requests == []


@pytest.mark.asyncio
async def test_single_tool_round(user, calculation_client):
    model = ScriptedModel([
        tool_reply(("call_1", "getDasha", {})),
        text_reply("You are in Jupiter mahadasha."),
    ])
    state = _state("Which dasha am I in?")
    result_log = ToolResultLog()

    outcome = await ExecutionLoop(model).run(
        state, build_registry(user, calculation_client), result_log=result_log
    )

    assert outcome.status == STATUS_COMPLETE
    assert outcome.iterations == 1
    assert [turn.role for turn in state.turns] == [ROLE_USER, ROLE_ASSISTANT, ROLE_TOOL, ROLE_ASSISTANT]
    tool_turn = state.turns[2]
    assert tool_turn.tool_call_id == "call_1"
    assert '"current_mahadasha": "Jupiter"' in tool_turn.content
    assert result_log.latest().data == DASHA
    assert outcome.records[0].success
    # The second model call sees the tool result
    assert model.calls[1]["turns"][-1] == tool_turn


@pytest.mark.asyncio
async def test_batch_results_follow_request_order(user):
    service = FakeCalculationService(delays={"/calculate/transits": 0.05, "/calculate/dasha": 0.0})
    model = ScriptedModel([
        tool_reply(
            ("call_a", "getTransits", {"current_date": "2025-01-31"}),
            ("call_b", "getDasha", {}),
            ("call_c", "getVargaChart", {"varga_num": 9}),
        ),
        text_reply("Done."),
    ])
    state = _state()

    await ExecutionLoop(model).run(state, build_registry(user, make_calculation_client(service)))

    tool_turns = [turn for turn in state.turns if turn.role == ROLE_TOOL]
    assert [turn.tool_call_id for turn in tool_turns] == ["call_a", "call_b", "call_c"]
    assert [turn.name for turn in tool_turns] == ["getTransits", "getDasha", "getVargaChart"]
    # Transits answered last but the calls overlapped
    assert service.max_in_flight > 1


@pytest.mark.asyncio
async def test_sequential_executor_gives_the_same_transcript(user, calculation_client):
    replies = [
        tool_reply(("call_a", "getBirthChart", {}), ("call_b", "getDasha", {})),
        text_reply("Done."),
    ]
    parallel_state, sequential_state = _state(), _state()

    await ExecutionLoop(ScriptedModel(replies)).run(
        parallel_state, build_registry(user, calculation_client)
    )
    await ExecutionLoop(ScriptedModel(replies), ToolExecutor(parallel=False)).run(
        sequential_state, build_registry(user, calculation_client)
    )

    assert parallel_state.turns == sequential_state.turns


@pytest.mark.asyncio
async def test_tool_failure_does_not_stop_the_loop(user):
    service = FakeCalculationService(statuses={"/calculate/varga": [500]})
    model = ScriptedModel([
        tool_reply(("call_1", "getVargaChart", {"varga_num": 9}), ("call_2", "getDasha", {})),
        text_reply("From your dasha alone..."),
    ])
    state = _state()

    outcome = await ExecutionLoop(model).run(state, build_registry(user, make_calculation_client(service)))

    assert outcome.status == STATUS_COMPLETE
    failed, succeeded = state.turns[2], state.turns[3]
    assert failed.tool_call_id == "call_1"
    assert failed.content == "Error: Error calculating Varga chart D9: Calculation service error (status 500)."
    assert succeeded.tool_call_id == "call_2"
    assert [record.success for record in outcome.records] == [False, True]


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_back_to_the_model(user, calculation_client):
    model = ScriptedModel([
        tool_reply(("call_1", "getHoroscope", {})),
        text_reply("Let me answer from your birth chart instead."),
    ])
    state = _state()

    outcome = await ExecutionLoop(model).run(state, build_registry(user, calculation_client))

    assert outcome.status == STATUS_COMPLETE
    assert state.turns[2].content.startswith("Error: Tool 'getHoroscope' not found. Available tools:")


@pytest.mark.asyncio
async def test_bound_gives_inconclusive(user, calculation_client):
    model = StubbornModel()
    state = _state()

    outcome = await ExecutionLoop(model, max_iterations=3).run(state, build_registry(user, calculation_client))

    assert outcome.status == STATUS_INCONCLUSIVE
    assert outcome.answer == INCONCLUSIVE_ANSWER
    assert outcome.iterations == 3
    assert model.calls == 4
    # Every requested call in the transcript has its result
    requested = [call.id for turn in state.turns for call in turn.tool_calls]
    answered = [turn.tool_call_id for turn in state.turns if turn.role == ROLE_TOOL]
    assert requested == answered


def test_bound_must_be_positive():
    with pytest.raises(ValueError):
        ExecutionLoop(StubbornModel(), max_iterations=0)


@pytest.mark.asyncio
async def test_expired_deadline_stops_before_the_model(user, calculation_client):
    model = ScriptedModel([text_reply("too late")])

    with pytest.raises(DeadlineExceeded):
        await ExecutionLoop(model).run(
            _state(),
            build_registry(user, calculation_client),
            deadline=Deadline(time.monotonic() - 1),
        )

    assert model.calls == []


@pytest.mark.asyncio
async def test_model_timeout_is_bounded_by_the_deadline(user, calculation_client):
    model = ScriptedModel([text_reply("ok")])
    loop = ExecutionLoop(model, model_timeout_seconds=60)

    await loop.run(_state(), build_registry(user, calculation_client), deadline=Deadline.after(5))

    assert 0 < model.calls[0]["timeout"] <= 5


@pytest.mark.asyncio
async def test_model_failure_is_typed(user, calculation_client):
    model = ScriptedModel([RuntimeError("connection reset")])

    with pytest.raises(ModelCallError, match="connection reset"):
        await ExecutionLoop(model).run(_state(), build_registry(user, calculation_client))


@pytest.mark.asyncio
async def test_book_search_sees_results_from_earlier_rounds_only(user, calculation_client, store, index_backend, tracker):
    tracker.set_store_handle("vs_existing")
    model = ScriptedModel([
        tool_reply(("call_1", "getDasha", {}), ("call_2", "searchBooks", {"query": "Jupiter dasha"})),
        tool_reply(("call_3", "searchBooks", {"query": "Saturn antardasha remedies"})),
        text_reply("Per Parashara..."),
    ])
    result_log = ToolResultLog()
    registry = build_registry(user, calculation_client, store, result_log=result_log)

    await ExecutionLoop(model).run(_state(), registry, result_log=result_log)

    same_batch_query = index_backend.queries[0][1]
    later_query = index_backend.queries[1][1]
    assert "Astrological Context" not in same_batch_query
    assert "Current Mahadasha: Jupiter" in later_query
