import inspect
from typing import Any


async def source_result(result: Any) -> Any:
    """
    Result of a role or directory source call.

    Sources are either async Azure clients or plain objects serving
    pre-fetched records; only the former hand back something to await.
    """
    if inspect.isawaitable(result):
        result = await result
    return result
