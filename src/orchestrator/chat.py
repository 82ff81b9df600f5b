from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any, Awaitable, Callable, cast

from langgraph.graph import END, START, StateGraph

from core.config import ChatConfig
from core.errors import BridgeError, ConfigurationError, WorkerConnectionError, WorkerNotFoundError
from core.types import CallSummary, ChatOutcome, ToolCall, ToolDefinition, ToolResult
from llm.client import ReasoningService
from mcp_client.bridge import call_worker_tool
from observability import add_error, bind_context, get_logger, set_round, set_state, truncate
from observability.ids import new_request_id, new_trace_id
from tools.name_mapping import ToolNameMap, default_name_map
from tools.openai_tools import DEFAULT_CATALOG
from tools.tool_messages import guidance_message, tool_message_from_result
from tools.tool_result_codec import wrap_error, wrap_result

from .arguments import complete_arguments
from .fallback import looks_like_refusal, synthesize_orphan_reply
from .graph_state import ChatState

ToolInvoker = Callable[[str, dict[str, Any]], Awaitable[Any]]
RefusalPredicate = Callable[[str], bool]

STEP_LIMIT_REPLY = (
    "We reached the tool step limit. Would you like me to summarise the findings from the previous RESULT_JSON?"
)


def _field(msg: Any, name: str) -> Any:
    if isinstance(msg, Mapping):
        return msg.get(name)
    return getattr(msg, name, None)


class ChatOrchestrator:
    """Bounded tool-use loop: AWAIT_MODEL -> DISPATCH -> AWAIT_MODEL ... -> reply.

    Each `run` is one inbound request; nothing is kept between requests.
    """

    def __init__(
        self,
        *,
        llm: ReasoningService,
        chat_cfg: ChatConfig | None = None,
        invoke: ToolInvoker = call_worker_tool,
        catalog: Sequence[ToolDefinition] = DEFAULT_CATALOG,
        names: ToolNameMap | None = None,
        refusal: RefusalPredicate = looks_like_refusal,
    ) -> None:
        self._llm = llm
        self._cfg = chat_cfg or ChatConfig()
        self._invoke = invoke
        self._catalog = list(catalog)
        self._names = names or default_name_map()
        self._refusal = refusal
        self._log = get_logger("crawlagent.orchestrator")

        # Every published tool must reach a worker tool.
        self._names.ensure_total(t.name for t in self._catalog)
        self._tool_specs = [t.to_openai() for t in self._catalog]
        self._graph = self._build_graph()

    async def run(self, messages: Sequence[Any]) -> ChatOutcome:
        bind_context(trace_id=new_trace_id(), request_id=new_request_id())

        system = self._cfg.system_prompt
        for m in messages:
            if _field(m, "role") == "system":
                system = str(_field(m, "content") or "")
                break

        history = [
            {"role": str(_field(m, "role")), "content": str(_field(m, "content") or "")}
            for m in messages
            if _field(m, "role") != "system"
        ]
        latest_user = next(
            (str(_field(m, "content") or "") for m in reversed(messages) if _field(m, "role") == "user"),
            "",
        )

        t0 = time.perf_counter()
        out_state = cast(
            ChatState,
            await self._graph.ainvoke(
                {
                    "system": system,
                    "latest_user_text": latest_user,
                    "history": history,
                    "round": 0,
                    "tool_round_done": False,
                    "pending_tool_calls": [],
                    "tool_calls": [],
                    "last_payload": None,
                    "has_payload": False,
                },
                {"recursion_limit": 4 * self._cfg.max_rounds + 8},
            ),
        )
        outcome = out_state["outcome"]

        self._log.info(
            "chat_done",
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            ok=outcome.ok,
            rounds=out_state.get("round", 0),
            tool_calls=len(outcome.tool_calls),
            fallback=outcome.fallback,
        )
        return outcome

    def _build_graph(self):
        max_rounds = self._cfg.max_rounds

        async def model_node(state: ChatState) -> dict[str, Any]:
            rnd = int(state.get("round", 0)) + 1
            set_round(rnd)
            set_state("AWAIT_MODEL")

            # Once data has been fetched the model must answer, not re-invoke.
            tool_choice = "none" if state.get("tool_round_done") else "auto"
            history = list(state.get("history", []))

            t0 = time.perf_counter()
            completion = await asyncio.to_thread(
                self._llm.complete,
                system=str(state.get("system", "")),
                messages=history,
                tools=self._tool_specs,
                tool_choice=tool_choice,
            )
            self._log.info(
                "model_done",
                latency_ms=round((time.perf_counter() - t0) * 1000, 2),
                tool_choice=tool_choice,
                tool_calls=[tc.name for tc in completion.tool_calls],
            )

            history.append(completion.message)
            update: dict[str, Any] = {"history": history, "round": rnd}

            if completion.tool_calls:
                update["pending_tool_calls"] = list(completion.tool_calls)
                return update

            text = completion.text
            summaries = list(state.get("tool_calls", []))
            if state.get("has_payload") and self._refusal(text):
                payload = state.get("last_payload")
                self._log.warning("fallback_activated", model_text=truncate(text), payload=truncate(payload, 2000))
                update["outcome"] = ChatOutcome(
                    ok=True,
                    reply=synthesize_orphan_reply(payload, limit=self._cfg.fallback_limit),
                    tool_calls=summaries,
                    fallback=True,
                )
            else:
                update["outcome"] = ChatOutcome(ok=True, reply=text, tool_calls=summaries)
            return update

        async def dispatch_node(state: ChatState) -> dict[str, Any]:
            set_state("DISPATCH")
            history = list(state.get("history", []))
            latest_user = str(state.get("latest_user_text", ""))
            done: list[CallSummary] = []
            last_payload = state.get("last_payload")
            has_payload = bool(state.get("has_payload"))

            pending: list[ToolCall] = list(state.get("pending_tool_calls", []))
            for tc in pending:
                args = complete_arguments(
                    tc.name,
                    tc.arguments,
                    latest_user_text=latest_user,
                    default_depth=self._cfg.default_depth,
                    default_max_pages=self._cfg.default_max_pages,
                )
                worker_name = tc.name
                try:
                    worker_name = self._names.to_worker(tc.name)
                    self._log.info("tool_dispatch", tool=tc.name, worker_tool=worker_name, tool_args=truncate(args))
                    payload = await self._invoke(worker_name, args)
                except (BridgeError, ConfigurationError) as e:
                    msg = str(e) or "tool execution failed"
                    add_error(msg)
                    self._log.error("tool_failed", tool=tc.name, worker_tool=worker_name, error=msg)
                    failed = ToolResult(tool_call_id=tc.id, name=tc.name, ok=False, content=wrap_error(msg), error=msg)
                    history.append(tool_message_from_result(failed))
                    done.append(CallSummary(name=tc.name, args=args, ok=False))
                    dependency_down = isinstance(e, (WorkerNotFoundError, WorkerConnectionError))
                    # A single failure ends the whole request; nothing is retried.
                    return {
                        "history": history,
                        "tool_calls": done,
                        "pending_tool_calls": [],
                        "outcome": ChatOutcome(
                            ok=False,
                            error=f"tool {worker_name} failed: {msg}",
                            tool_calls=[*state.get("tool_calls", []), *done],
                            status=503 if dependency_down else 500,
                        ),
                    }

                result = ToolResult(
                    tool_call_id=tc.id,
                    name=tc.name,
                    ok=True,
                    content=wrap_result(payload),
                    payload=payload,
                )
                history.append(tool_message_from_result(result))
                done.append(CallSummary(name=tc.name, args=args, ok=True))
                # Global, not per tool: the next successful call of any tool replaces it.
                last_payload = payload
                has_payload = True

            history.append(guidance_message())
            return {
                "history": history,
                "tool_calls": done,
                "pending_tool_calls": [],
                "tool_round_done": True,
                "last_payload": last_payload,
                "has_payload": has_payload,
            }

        async def limit_node(state: ChatState) -> dict[str, Any]:
            set_state("STEP_LIMIT")
            self._log.warning("step_limit_reached", rounds=state.get("round", 0))
            return {"outcome": ChatOutcome(ok=True, reply=STEP_LIMIT_REPLY, tool_calls=[])}

        def after_model(state: ChatState) -> str:
            return "done" if state.get("outcome") is not None else "dispatch"

        def after_dispatch(state: ChatState) -> str:
            if state.get("outcome") is not None:
                return "done"
            if int(state.get("round", 0)) >= max_rounds:
                return "limit"
            return "model"

        builder = StateGraph(ChatState)
        builder.add_node("model", model_node)
        builder.add_node("dispatch", dispatch_node)
        builder.add_node("limit", limit_node)

        builder.add_edge(START, "model")
        builder.add_conditional_edges("model", after_model, {"done": END, "dispatch": "dispatch"})
        builder.add_conditional_edges(
            "dispatch",
            after_dispatch,
            {"done": END, "limit": "limit", "model": "model"},
        )
        builder.add_edge("limit", END)

        return builder.compile()
