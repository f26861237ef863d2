"""
Tests for toolgraph/graph.py and toolgraph/executor.py
=======================================================
Full runs of both workflows against the scripted ChatModel and the real tools.

Covers:
  - validate_spec(): every table rule
  - arithmetic workflow: single tool call, chained tool calls, no tool call
  - crop workflow: rejection then approval, the "no crop produced"
    short-circuit, the rejection cap
  - run_graph(): step limit, provider errors propagate unchanged, a router
    returning a name outside its allow-list
"""
from itertools import count

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langgraph.graph import END

from toolgraph.arithmetic import arithmetic_registry
from toolgraph.errors import GraphDefinitionError, ModelInvocationError, StepLimitExceeded
from toolgraph.executor import run_graph
from toolgraph.graph import (
    GraphSpec,
    NodeSpec,
    build_arithmetic_graph,
    build_crop_graph,
    compile_graph,
    validate_spec,
)
from toolgraph.imaging import crop_registry
from toolgraph.prompts import NO_CROP_FEEDBACK
from toolgraph.state import MessagesState, initial_crop_state


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _call(name: str, args: dict, call_id: str) -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id}])


def _crop_call(call_id: str, width: int = 20, height: int = 20) -> AIMessage:
    return _call("crop_image", {"crop_area": {"x": 0, "y": 0, "width": width, "height": height}}, call_id)


def _crop_inputs(uri: str) -> dict:
    request = HumanMessage(content=[
        {"type": "text", "text": "Crop it to a square around the subject"},
        {"type": "image_url", "image_url": {"url": uri}},
    ])
    return initial_crop_state([request])


def _noop(state):
    return {"messages": []}


# ---------------------------------------------------------------------------
# validate_spec
# ---------------------------------------------------------------------------

class TestValidateSpec:
    def test_valid_table_passes(self):
        validate_spec(GraphSpec(
            entry="a",
            nodes={
                "a": NodeSpec(_noop, router=lambda s: END, successors=("b", END)),
                "b": NodeSpec(_noop, successors=("a",)),
            },
        ))

    def test_missing_entry(self):
        with pytest.raises(GraphDefinitionError, match="Entry"):
            validate_spec(GraphSpec(entry="x", nodes={"a": NodeSpec(_noop, successors=(END,))}))

    def test_static_node_needs_exactly_one_successor(self):
        with pytest.raises(GraphDefinitionError, match="exactly one"):
            validate_spec(GraphSpec(entry="a", nodes={"a": NodeSpec(_noop, successors=())}))
        with pytest.raises(GraphDefinitionError, match="exactly one"):
            validate_spec(GraphSpec(
                entry="a",
                nodes={"a": NodeSpec(_noop, successors=("a", END))},
            ))

    def test_router_needs_allowed_successors(self):
        with pytest.raises(GraphDefinitionError, match="no allowed"):
            validate_spec(GraphSpec(entry="a", nodes={"a": NodeSpec(_noop, router=lambda s: END)}))

    def test_undeclared_successor(self):
        with pytest.raises(GraphDefinitionError, match="undeclared"):
            validate_spec(GraphSpec(entry="a", nodes={"a": NodeSpec(_noop, successors=("ghost",))}))

    def test_reserved_node_name(self):
        with pytest.raises(GraphDefinitionError, match="reserved"):
            validate_spec(GraphSpec(entry=END, nodes={END: NodeSpec(_noop, successors=(END,))}))

    def test_compile_graph_validates_first(self):
        with pytest.raises(GraphDefinitionError):
            compile_graph(MessagesState, GraphSpec(entry="x", nodes={}))


# ---------------------------------------------------------------------------
# Arithmetic workflow
# ---------------------------------------------------------------------------

class TestArithmeticWorkflow:
    async def test_single_tool_call(self, scripted_model):
        model = scripted_model(replies=[
            _call("add", {"a": 3, "b": 4}, "c1"),
            AIMessage(content="3 + 4 = 7"),
        ])
        graph = build_arithmetic_graph(model, arithmetic_registry())

        state = await run_graph(graph, {"messages": [HumanMessage(content="Add 3 and 4.")]})

        messages = state["messages"]
        assert len(messages) == 4
        assert isinstance(messages[2], ToolMessage)
        assert messages[2].tool_call_id == "c1"
        assert messages[2].content == "7.0"
        assert messages[3].content == "3 + 4 = 7"
        assert len(model.calls) == 2

    async def test_chained_tool_calls(self, scripted_model):
        model = scripted_model(replies=[
            _call("add", {"a": 9, "b": 7}, "c1"),
            _call("sqrt", {"value": 16}, "c2"),
            AIMessage(content="sqrt(9 + 7) = 4"),
        ])
        graph = build_arithmetic_graph(model, arithmetic_registry())

        state = await run_graph(graph, {"messages": [HumanMessage(content="Calc sqrt(9 + 7)")]})

        messages = state["messages"]
        assert len(messages) == 6
        tool_results = [m.content for m in messages if isinstance(m, ToolMessage)]
        assert tool_results == ["16.0", "4.0"]
        # the second model call saw the first tool result
        assert model.calls[1]["messages"][-1].content == "16.0"

    async def test_answer_without_tools(self, scripted_model):
        model = scripted_model(replies=[AIMessage(content="Hello!")])
        graph = build_arithmetic_graph(model, arithmetic_registry())

        state = await run_graph(graph, {"messages": [HumanMessage(content="Hi")]})

        assert [m.content for m in state["messages"]] == ["Hi", "Hello!"]

    async def test_tool_error_is_reported_to_model(self, scripted_model):
        model = scripted_model(replies=[
            _call("sqrt", {"value": -9}, "c1"),
            AIMessage(content="Negative numbers have no real square root."),
        ])
        graph = build_arithmetic_graph(model, arithmetic_registry())

        state = await run_graph(graph, {"messages": [HumanMessage(content="sqrt(-9)?")]})

        result = state["messages"][2]
        assert result.status == "error"
        assert model.calls[1]["messages"][-1].tool_call_id == "c1"
        assert "negative" in model.calls[1]["messages"][-1].content


# ---------------------------------------------------------------------------
# Crop workflow
# ---------------------------------------------------------------------------

class TestCropWorkflow:
    async def test_rejection_then_approval(self, scripted_model, png_data_uri):
        model = scripted_model(
            replies=[_crop_call("c1", 10, 10), _crop_call("c2", 30, 30)],
            verdicts=[
                {"approved": False, "feedback": "subject cut off"},
                {"approved": True, "feedback": "Well framed"},
            ],
        )
        graph = build_crop_graph(model, crop_registry(), max_rejections=3)

        state = await run_graph(graph, _crop_inputs(png_data_uri))

        assert state["approval"] == {"status": "approved", "feedback": "Well framed"}
        assert state["rejections"] == 1
        assert state["source_image"] == png_data_uri
        assert state["cropped_image"].startswith("data:image/png;base64,")
        assert len(model.calls) == 2
        assert len(model.structured_calls) == 2

        feedback_messages = [
            m for m in state["messages"]
            if isinstance(m, HumanMessage) and isinstance(m.content, str) and "subject cut off" in m.content
        ]
        assert len(feedback_messages) == 1
        assert "subject cut off" not in model.calls[0]["system_prompt"]
        assert "subject cut off" in model.calls[1]["system_prompt"]

    async def test_latest_crop_is_evaluated(self, scripted_model, png_data_uri):
        model = scripted_model(
            replies=[_crop_call("c1", 10, 10), _crop_call("c2", 30, 30)],
            verdicts=[{"approved": False, "feedback": "too tight"}, {"approved": True, "feedback": "ok"}],
        )
        graph = build_crop_graph(model, crop_registry(), max_rejections=3)

        state = await run_graph(graph, _crop_inputs(png_data_uri))

        first = model.structured_calls[0]["messages"][0].content[4]["image_url"]["url"]
        second = model.structured_calls[1]["messages"][0].content[4]["image_url"]["url"]
        assert first != second
        assert state["cropped_image"] == second

    async def test_no_crop_short_circuits_approver(self, scripted_model, png_data_uri):
        model = scripted_model(replies=[AIMessage(content="I would rather not crop this.")])
        graph = build_crop_graph(model, crop_registry(), max_rejections=1)

        state = await run_graph(graph, _crop_inputs(png_data_uri))

        assert state["approval"] == {"status": "rejected", "feedback": NO_CROP_FEEDBACK}
        assert state["cropped_image"] is None
        assert model.structured_calls == []
        assert len(model.calls) == 1

    async def test_rejection_cap_ends_run(self, scripted_model, png_data_uri):
        model = scripted_model(
            replies=[_crop_call("c1"), _crop_call("c2")],
            verdicts=[
                {"approved": False, "feedback": "bad"},
                {"approved": False, "feedback": "still bad"},
            ],
        )
        graph = build_crop_graph(model, crop_registry(), max_rejections=2)

        state = await run_graph(graph, _crop_inputs(png_data_uri))

        assert state["approval"] == {"status": "rejected", "feedback": "still bad"}
        assert state["rejections"] == 2
        assert len(model.calls) == 2

    async def test_cap_defaults_to_settings(self, scripted_model, png_data_uri, monkeypatch):
        monkeypatch.setenv("AGENT_MAX_REJECTIONS", "1")
        model = scripted_model(replies=[_crop_call("c1")], verdicts=[{"approved": False, "feedback": "no"}])
        graph = build_crop_graph(model, crop_registry())

        state = await run_graph(graph, _crop_inputs(png_data_uri))

        assert state["rejections"] == 1
        assert len(model.calls) == 1


# ---------------------------------------------------------------------------
# run_graph
# ---------------------------------------------------------------------------

class TestRunGraph:
    async def test_endless_tool_loop_hits_step_limit(self, scripted_model):
        ids = count()
        model = scripted_model(default=lambda: _call("add", {"a": 1, "b": 1}, f"loop_{next(ids)}"))
        graph = build_arithmetic_graph(model, arithmetic_registry())

        with pytest.raises(StepLimitExceeded) as exc_info:
            await run_graph(graph, {"messages": [HumanMessage(content="forever")]}, max_steps=6)

        assert exc_info.value.max_steps == 6

    async def test_step_limit_defaults_to_settings(self, scripted_model, monkeypatch):
        monkeypatch.setenv("AGENT_MAX_STEPS", "4")
        ids = count()
        model = scripted_model(default=lambda: _call("add", {"a": 1, "b": 1}, f"loop_{next(ids)}"))
        graph = build_arithmetic_graph(model, arithmetic_registry())

        with pytest.raises(StepLimitExceeded) as exc_info:
            await run_graph(graph, {"messages": [HumanMessage(content="forever")]})

        assert exc_info.value.max_steps == 4

    async def test_model_error_propagates(self, scripted_model):
        error = ModelInvocationError("rate limited", status=429, category="RateLimitError")
        model = scripted_model(replies=[error])
        graph = build_arithmetic_graph(model, arithmetic_registry())

        with pytest.raises(ModelInvocationError) as exc_info:
            await run_graph(graph, {"messages": [HumanMessage(content="Add 1 and 1")]})

        assert exc_info.value.status == 429

    async def test_router_outside_allow_list_raises(self):
        spec = GraphSpec(
            entry="start",
            nodes={
                "start": NodeSpec(_noop, router=lambda state: "elsewhere", successors=("finish", END)),
                "finish": NodeSpec(_noop, successors=(END,)),
            },
        )
        graph = compile_graph(MessagesState, spec)

        with pytest.raises(GraphDefinitionError, match="elsewhere"):
            await run_graph(graph, {"messages": [HumanMessage(content="go")]})

    @pytest.mark.parametrize("max_steps, finishes", [(2, False), (3, True), (4, True)])
    async def test_step_limit_counts_node_executions(self, scripted_model, max_steps, finishes):
        # model → tools → model is three node executions
        model = scripted_model(replies=[_call("add", {"a": 3, "b": 4}, "c1"), AIMessage(content="7")])
        graph = build_arithmetic_graph(model, arithmetic_registry())
        inputs = {"messages": [HumanMessage(content="Add 3 and 4.")]}

        if finishes:
            state = await run_graph(graph, inputs, max_steps=max_steps)
            assert len(state["messages"]) == 4
        else:
            with pytest.raises(StepLimitExceeded):
                await run_graph(graph, inputs, max_steps=max_steps)
