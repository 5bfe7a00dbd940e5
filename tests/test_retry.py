import pytest

from services.retry import retry_async


class Flaky:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_returns_first_success():
    operation = Flaky([ConnectionError("down"), False, True])

    assert await retry_async(operation, attempts=3, delay=0) is True
    assert operation.calls == 3


@pytest.mark.asyncio
async def test_gives_up_after_attempts():
    operation = Flaky([False, False, False, True])

    assert await retry_async(operation, attempts=3, delay=0) is False
    assert operation.calls == 3


@pytest.mark.asyncio
async def test_falsy_result_accepted_when_configured():
    operation = Flaky([[], ["device"]])

    assert await retry_async(operation, attempts=3, delay=0, retry_on_falsy=False) == []
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_raise_on_failure_reraises_last_error():
    operation = Flaky([ConnectionError("one"), TimeoutError("two")])

    with pytest.raises(TimeoutError):
        await retry_async(operation, attempts=2, delay=0, raise_on_failure=True)


@pytest.mark.asyncio
async def test_exceptions_swallowed_by_default():
    operation = Flaky([RuntimeError("boom")])
    assert await retry_async(operation, attempts=1, delay=0) is None
