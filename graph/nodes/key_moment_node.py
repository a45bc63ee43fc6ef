# graph/nodes/key_moment_node.py
from graph.state import TickState


async def key_moment_node(state: TickState, oracle=None) -> dict:
    """毎時0分の切り替え時刻（始業・昼休み・終業）かを判定するノード"""
    action = await oracle.classify_moment(state["now"])
    return {"moment_action": action.value}
