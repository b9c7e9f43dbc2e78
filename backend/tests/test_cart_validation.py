import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.cart_validation import CartStockValidator
from app.services.stock_service import StockService


class RecordingSleep:
    """Sustituto de asyncio.sleep que registra las esperas sin dormir."""

    def __init__(self, on_call=None):
        self.delays = []
        self.on_call = on_call

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.on_call is not None:
            self.on_call(len(self.delays))
        await asyncio.sleep(0)


@pytest.fixture
def stock_service(stock_reader, settings, clock):
    return StockService(stock_reader=stock_reader, settings=settings, clock=clock)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def validator(stock_service, settings, clock, sleep):
    return CartStockValidator(stock_service, settings=settings, clock=clock, sleep=sleep)


@pytest.mark.asyncio
async def test_periodic_validation_respects_minimum_interval(validator, stock_reader, clock, cart_items):
    first = await validator.validate_periodically(cart_items)
    assert first["valid"] is True
    assert first["stock_updates"] == {}
    assert validator.last_check == clock.now

    clock.advance(29.9)
    assert await validator.validate_periodically(cart_items) is None

    clock.advance(0.2)
    stock_reader.stock["p2"] = 0
    second = await validator.validate_periodically(cart_items)
    assert second["valid"] is False
    assert second["stock_updates"] == {"p2": 0}
    assert len(stock_reader.calls) == 2


@pytest.mark.asyncio
async def test_periodic_validation_skips_empty_cart_and_locked_validator(validator, stock_reader, cart_items):
    assert await validator.validate_periodically([]) is None

    validator._validation_lock = True
    assert await validator.validate_periodically(cart_items) is None
    assert stock_reader.calls == []


@pytest.mark.asyncio
async def test_failed_periodic_validation_does_not_advance_last_check(validator, stock_reader, cart_items):
    stock_reader.error = RuntimeError("sin conexión")

    result = await validator.validate_periodically(cart_items)

    assert result["valid"] is False
    assert validator.last_check is None
    assert validator.is_validating is False


@pytest.mark.asyncio
async def test_forced_validation_ignores_interval(validator, stock_reader, cart_items):
    await validator.validate_periodically(cart_items)
    stock_reader.stock["p1"] = 1

    result = await validator.force_validation(cart_items)

    assert result["valid"] is False
    assert result["stock_updates"] == {"p1": 1}
    assert len(stock_reader.calls) == 2


@pytest.mark.asyncio
async def test_forced_validation_gives_up_after_bounded_wait(validator, sleep, stock_reader, cart_items):
    validator._validation_lock = True

    result = await validator.force_validation(cart_items)

    assert result == {"valid": True, "skipped": True, "out_of_stock_items": [], "stock_updates": {}}
    assert sleep.delays == [0.5] * 10
    assert sum(sleep.delays) == 5.0
    assert stock_reader.calls == []


@pytest.mark.asyncio
async def test_forced_validation_waits_for_running_validation(stock_service, settings, clock, stock_reader, cart_items):
    validator = None

    def release_on_third_poll(calls):
        if calls == 3:
            validator._validation_lock = False

    sleep = RecordingSleep(on_call=release_on_third_poll)
    validator = CartStockValidator(stock_service, settings=settings, clock=clock, sleep=sleep)
    validator._validation_lock = True

    result = await validator.force_validation(cart_items)

    assert len(sleep.delays) == 3
    assert result["valid"] is True
    assert "skipped" not in result
    assert len(stock_reader.calls) == 1
    assert validator.is_validating is False


@pytest.mark.asyncio
async def test_scheduled_validation_is_debounced(settings, clock, sleep, cart_items):
    stock_service = MagicMock()
    stock_service.validate_cart_stock = AsyncMock(return_value={"valid": True, "out_of_stock_items": []})
    validator = CartStockValidator(stock_service, settings=settings, clock=clock, sleep=sleep)
    on_result = AsyncMock()

    first = validator.schedule_validation(cart_items, on_result)
    second = validator.schedule_validation(cart_items[:1], on_result)
    result = await second

    assert first.cancelled()
    assert sleep.delays == [1.0]
    stock_service.validate_cart_stock.assert_awaited_once_with(cart_items[:1])
    on_result.assert_awaited_once_with(result)


@pytest.mark.asyncio
async def test_checkout_messages(validator, stock_reader, cart_items):
    assert (await validator.validate_checkout([]))["error"] == "Tu carrito está vacío"

    cart_items[2]["quantity"] = 4
    result = await validator.validate_checkout(cart_items)
    assert result["valid"] is False
    assert result["error"] == (
        "\"Jabón artesanal\" no está disponible en la cantidad solicitada. Solo hay 3 unidades disponibles."
    )
    assert result["stock_updates"] == {"p2": 3}

    stock_reader.stock["p1"] = 0
    result = await validator.validate_checkout(cart_items)
    assert len(result["out_of_stock_items"]) == 3
    assert result["error"].startswith("Algunos productos en tu carrito")


@pytest.mark.asyncio
async def test_checkout_reports_service_errors(validator, stock_reader, cart_items):
    stock_reader.error = RuntimeError("timeout")

    result = await validator.validate_checkout(cart_items)

    assert result["valid"] is False
    assert result["error"].startswith("Error al verificar la disponibilidad")


@pytest.mark.asyncio
async def test_valid_checkout(validator, cart_items):
    assert await validator.validate_checkout(cart_items) == {"valid": True, "skipped": False, "stock_updates": {}}


class BlockingStockService(StockService):
    """Servicio de stock cuya validación con caché espera a un evento."""

    def __init__(self, release: asyncio.Event, **kwargs):
        super().__init__(**kwargs)
        self.release = release

    async def validate_cart_stock(self, items):
        await self.release.wait()
        return await super().validate_cart_stock(items)


@pytest.mark.asyncio
async def test_periodic_and_forced_validation_share_the_lock(settings, clock, stock_reader, cart_items):
    release = asyncio.Event()
    stock_service = BlockingStockService(release, stock_reader=stock_reader, settings=settings, clock=clock)

    def release_on_second_poll(calls):
        if calls == 2:
            release.set()

    sleep = RecordingSleep(on_call=release_on_second_poll)
    validator = CartStockValidator(stock_service, settings=settings, clock=clock, sleep=sleep)

    periodic = asyncio.create_task(validator.validate_periodically(cart_items))
    await asyncio.sleep(0)
    assert validator.is_validating is True

    forced = await validator.force_validation(cart_items)
    periodic_result = await periodic

    assert "skipped" not in forced
    assert forced["valid"] is True
    assert 2 <= len(sleep.delays) < settings.STOCK_LOCK_WAIT_ATTEMPTS
    assert periodic_result["valid"] is True
    assert len(stock_reader.calls) == 2
    assert validator.is_validating is False
