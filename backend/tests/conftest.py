import copy
from collections import OrderedDict
from typing import Dict, List

import pytest

from app.core.config import Settings
from app.crud import cart_crud
from app.services import cart_service as cart_service_module


class FakeClock:
    """Reloj monotónico controlado por el test."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStockReader:
    """Lector de stock en memoria que cuenta las consultas."""

    def __init__(self, stock: Dict[str, int]):
        self.stock = dict(stock)
        self.calls: List[List[str]] = []
        self.error: Exception = None

    async def __call__(self, product_ids: List[str]) -> Dict[str, int]:
        self.calls.append(list(product_ids))
        if self.error is not None:
            raise self.error
        return {pid: self.stock[pid] for pid in product_ids if pid in self.stock}


class InMemoryCartStore:
    """Sustituto de cart_crud que guarda los carritos en un diccionario."""

    def __init__(self):
        self.carts: Dict[str, List[dict]] = {}
        self.saves = 0

    async def get_cart_items(self, user_id: str) -> List[dict]:
        return copy.deepcopy(self.carts.get(user_id, []))

    async def save_cart_items(self, user_id: str, items: List[dict]) -> None:
        self.saves += 1
        self.carts[user_id] = copy.deepcopy(items)

    async def delete_cart(self, user_id: str) -> None:
        self.carts.pop(user_id, None)


@pytest.fixture
def settings():
    return Settings(
        TAX_RATE=0.16,
        MIN_FREE_SHIPPING=500.0,
        SHIPPING_COST=50.0,
        STOCK_REVALIDATION_INTERVAL=30.0,
        STOCK_CACHE_TTL=30.0,
        STOCK_VALIDATION_DEBOUNCE=1.0,
        STOCK_LOCK_WAIT_ATTEMPTS=10,
        STOCK_LOCK_POLL_INTERVAL=0.5,
        STOCK_BACKGROUND_VALIDATION=False,
        CART_VALIDATORS_MAX=100,
        FUNCTIONS_BASE_URL="https://functions.example.com",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stock_reader():
    return FakeStockReader({"p1": 10, "p2": 3, "p3": 0})


@pytest.fixture
def cart_store(monkeypatch):
    store = InMemoryCartStore()
    monkeypatch.setattr(cart_crud, "get_cart_items", store.get_cart_items)
    monkeypatch.setattr(cart_crud, "save_cart_items", store.save_cart_items)
    monkeypatch.setattr(cart_crud, "delete_cart", store.delete_cart)
    monkeypatch.setattr(cart_service_module, "_validators", OrderedDict())
    return store


@pytest.fixture
def cart_items():
    return [
        {"product_id": "p1", "variant_id": None, "name": "Vela de soya", "price": 250.0, "quantity": 2, "stock": 10},
        {"product_id": "p1", "variant_id": "v1", "name": "Vela de soya - Lavanda", "price": 280.0, "quantity": 1, "stock": 10},
        {"product_id": "p2", "variant_id": None, "name": "Jabón artesanal", "price": 80.0, "quantity": 1, "stock": 3},
    ]
