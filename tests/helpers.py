import asyncio


async def wait_until(predicate, max_ticks: int = 200) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(max_ticks):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
