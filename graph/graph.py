# graph/graph.py
from functools import partial

from langgraph.graph import StateGraph, END

from graph.nodes.presence_helpers import SETTLE_DELAY_SECONDS
from graph.state import TickState


def route_after_key_moment(state: TickState) -> str:
    if state["moment_action"] != "none":
        return "transition"
    return "working_time"


def route_after_working_time(state: TickState) -> str:
    if not state["is_working_time"]:
        return "off_hours"
    return "keep_active"


def build_graph(
    oracle=None,
    presence=None,
    notifier=None,
    settle_seconds: float = SETTLE_DELAY_SECONDS,
):
    """タイマー評価用のLangGraphを構築して返す

    各ノード関数はサービス依存を持つため、functools.partialでラップして
    LangGraphが期待する (state) -> dict シグネチャに合わせる。
    判定は key_moment → (transition | working_time → (off_hours | keep_active))
    の順で、最初に該当した分岐だけが実行される。
    """
    from graph.nodes.key_moment_node import key_moment_node
    from graph.nodes.transition_node import transition_node
    from graph.nodes.working_time_node import working_time_node
    from graph.nodes.off_hours_node import off_hours_node
    from graph.nodes.keep_active_node import keep_active_node

    workflow = StateGraph(TickState)

    workflow.add_node("key_moment", partial(key_moment_node, oracle=oracle))
    workflow.add_node(
        "transition",
        partial(
            transition_node,
            presence=presence,
            notifier=notifier,
            oracle=oracle,
            settle_seconds=settle_seconds,
        ),
    )
    workflow.add_node("working_time", partial(working_time_node, oracle=oracle))
    workflow.add_node(
        "off_hours", partial(off_hours_node, presence=presence, notifier=notifier)
    )
    workflow.add_node(
        "keep_active",
        partial(
            keep_active_node,
            presence=presence,
            notifier=notifier,
            settle_seconds=settle_seconds,
        ),
    )

    workflow.set_entry_point("key_moment")

    workflow.add_conditional_edges(
        "key_moment",
        route_after_key_moment,
        {"transition": "transition", "working_time": "working_time"},
    )
    workflow.add_conditional_edges(
        "working_time",
        route_after_working_time,
        {"off_hours": "off_hours", "keep_active": "keep_active"},
    )

    workflow.add_edge("transition", END)
    workflow.add_edge("off_hours", END)
    workflow.add_edge("keep_active", END)

    return workflow.compile()
