import logging
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import StateGraph, END

from .onboarding.agent import OnboardingAgent
from .onboarding.content_filter import filter_response
from .onboarding.policy import TurnDecision, decide, fallback_text
from .onboarding.schemas import (
    MESSAGE_TYPE_ANSWER,
    SENDER_ASSISTANT,
    SENDER_USER,
    TOPIC_ONBOARD,
    Conversation,
    Message,
)
from .onboarding.storage import ConversationStore

logger = logging.getLogger('onboard_turn_graph')


# --- 1. Define Graph State ---
class TurnState(TypedDict, total=False):
    user_id: str
    response: Optional[str]
    conversation: Optional[Conversation]
    history: List[Message]
    decision: Optional[TurnDecision]
    message: Optional[str]
    is_complete: bool


# --- 2. Build the Graph ---

def build_turn_graph(store: ConversationStore, agent: OnboardingAgent) -> Any:
    """Compile the graph for one onboarding turn.

    load -> decide -> (generate) -> persist -> END, or decide -> END when
    there is nothing new to store.
    """

    def load_node(state: TurnState) -> TurnState:
        user_id = state["user_id"]
        conversation = store.get_or_create_conversation(user_id, TOPIC_ONBOARD)
        history = store.fetch_messages(conversation)
        return {**state, "conversation": conversation, "history": history}

    def decide_node(state: TurnState) -> TurnState:
        decision = decide(state.get("history") or [], state.get("response"))
        logger.info(
            f"Turn for {state['user_id']}: state={decision.state.value} "
            f"action={decision.action.value} questions={decision.question_count}"
        )
        message = None if decision.needs_generation else fallback_text(decision)
        return {**state, "decision": decision, "message": message, "is_complete": decision.is_complete}

    def generate_node(state: TurnState) -> TurnState:
        message = agent.next_message(state.get("history") or [], state.get("response"), state["decision"])
        return {**state, "message": message}

    def persist_node(state: TurnState) -> TurnState:
        conversation = state["conversation"]
        decision = state["decision"]
        new_messages = []
        if state.get("response") is not None:
            new_messages.append(
                Message(
                    conversation_id=conversation.conversation_id,
                    user_id=conversation.user_id,
                    sender_type=SENDER_USER,
                    message=state["response"],
                    message_type=MESSAGE_TYPE_ANSWER,
                )
            )
        new_messages.append(
            Message(
                conversation_id=conversation.conversation_id,
                user_id=conversation.user_id,
                sender_type=SENDER_ASSISTANT,
                message=state["message"],
                message_type=decision.message_type,
            )
        )
        store.append_messages(conversation, new_messages)
        return state

    def route_decision(state: TurnState) -> str:
        decision = state["decision"]
        if not decision.appends:
            return "done"
        return "generate" if decision.needs_generation else "persist"

    builder = StateGraph(TurnState)

    builder.add_node("load", load_node)
    builder.add_node("decide", decide_node)
    builder.add_node("generate", generate_node)
    builder.add_node("persist", persist_node)

    builder.set_entry_point("load")
    builder.add_edge("load", "decide")
    builder.add_conditional_edges(
        "decide",
        route_decision,
        {
            "generate": "generate",
            "persist": "persist",
            "done": END,
        },
    )
    builder.add_edge("generate", "persist")
    builder.add_edge("persist", END)

    return builder.compile()


# --- 3. Execution Helper ---

def run_turn(graph: Any, user_id: str, response: Optional[str] = None) -> Dict[str, Any]:
    """Run one turn and return ``{"message", "is_complete"}``.

    The answer goes through the content filter first. Storage errors
    propagate; the HTTP layer turns them into the fallback
    response.
    """
    if response is not None:
        response = filter_response(response.strip())
    final_state = graph.invoke({"user_id": user_id, "response": response})
    return {
        "message": final_state.get("message") or "",
        "is_complete": bool(final_state.get("is_complete")),
    }
