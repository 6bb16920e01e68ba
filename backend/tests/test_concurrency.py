"""
Concurrency Tests.

Validates that racing writers cannot oversell stock or lose balance updates.
"""

import asyncio

import pytest

from backend.app.core.exceptions import InsufficientStockError
from backend.app.domain.ledger.balance_mutator import ConsumeStatus
from backend.app.domain.ledger.redemption_coordinator import RedemptionResult
from backend.app.models.inventory_item import InventoryItem


@pytest.mark.asyncio
async def test_concurrent_redeem_last_unit(mutator, coordinator, make_item, session_factory):
    """Two redemptions race for a stock of 1: exactly one wins."""
    await mutator.add(100)
    item = await make_item(cost=10, stock=1)
    
    results = await asyncio.gather(
        coordinator.redeem(item.id),
        coordinator.redeem(item.id),
        return_exceptions=True
    )
    
    successes = [r for r in results if isinstance(r, RedemptionResult)]
    failures = [r for r in results if isinstance(r, InsufficientStockError)]
    assert len(successes) == 1
    assert len(failures) == 1
    
    async with session_factory() as session:
        stored = await session.get(InventoryItem, item.id)
        assert stored.stock == 0
    
    account = await mutator.store.get_account()
    assert account.balance == 90


@pytest.mark.asyncio
async def test_concurrent_adds_conserve_total(mutator, queries):
    await asyncio.gather(*(mutator.add(n) for n in range(1, 11)))
    
    account = await mutator.store.get_account()
    assert account.balance == 55
    
    audit = await queries.verify_ledger()
    assert audit.consistent
    assert audit.transaction_count == 10


@pytest.mark.asyncio
async def test_concurrent_consumes_never_overdraw(mutator, queries):
    await mutator.add(10)
    
    outcomes = await asyncio.gather(*(mutator.consume(i, 3) for i in range(5)))
    
    applied = [o for o in outcomes if o.status == ConsumeStatus.APPLIED]
    skipped = [o for o in outcomes if o.status == ConsumeStatus.SKIPPED_INSUFFICIENT_FUNDS]
    assert len(applied) == 3
    assert len(skipped) == 2
    
    account = await mutator.store.get_account()
    assert account.balance == 1
    assert account.total_used == 9
    assert (await queries.verify_ledger()).consistent
