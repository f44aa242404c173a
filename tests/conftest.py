import asyncio

import pytest


@pytest.fixture(autouse=True)
def _current_event_loop():
    ''' IsolatedAsyncioTestCase leaves the main thread with no current
    event loop; give synchronous tests a fresh one so they do not depend
    on test ordering.
    '''
    try:
        asyncio.get_event_loop_policy().get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        yield
        asyncio.set_event_loop(None)
        loop.close()
    else:
        yield
