"""Tools shared by the assistant agents."""

from datetime import UTC, datetime

from langchain_core.tools import tool

from bi_assistant.agents.primitives import Tool


@tool
def get_current_time() -> dict[str, str]:
    """Get the current date and time.

    Use this tool when you need to know the current date or time.
    Returns the date, the time and the full ISO timestamp (UTC).
    """
    now = datetime.now(UTC)
    return {
        "time": now.strftime("%H:%M:%S"),
        "date": now.date().isoformat(),
        "iso": now.isoformat(),
    }


CURRENT_TIME_TOOL = Tool.from_langchain(get_current_time, show_in_thread=True)
