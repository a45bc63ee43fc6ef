# graph/nodes/working_time_node.py
from graph.state import TickState


async def working_time_node(state: TickState, oracle=None) -> dict:
    """勤務時間内か、時間外ならその理由を判定するノード"""
    reason = await oracle.off_hours_reason(state["now"])
    return {
        "is_working_time": reason is None,
        "off_hours_reason": reason.value if reason else None,
    }
