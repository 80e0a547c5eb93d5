import asyncio

import pytest


async def _wait(awaitable):
    return await awaitable


@pytest.fixture
def resolve():
    """Drive a Mutation (from set() or get()) to completion outside a loop."""

    def _resolve(awaitable):
        return asyncio.run(_wait(awaitable))

    return _resolve
