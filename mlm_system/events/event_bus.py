# mlm_system/events/event_bus.py
"""
Computation notices published by the services.

A bus is created by the caller and handed to each service; services built
without one publish nothing. Subscribers never influence a result: their
errors are logged and dropped.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Type
import asyncio
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CVDCalculated:
    sellerId: int
    month: str  # YYYY-MM
    totalCommission: Decimal
    totalPoints: int


@dataclass(frozen=True)
class CVDMonthClosed:
    month: str
    sellersCount: int
    totalCommission: Decimal


@dataclass(frozen=True)
class TeamAggregated:
    sellerCode: str
    personalPoints: int
    groupPoints: int
    recruitsCount: int


@dataclass(frozen=True)
class RCEvaluated:
    sellerId: int
    qualified: bool
    qualifiedTeams: int
    totalEffective: int


@dataclass(frozen=True)
class ActionPlanGenerated:
    sellerId: int
    positionActuelle: str
    objectivesCount: int


class EventBus:
    """Dispatches notices to handlers registered for their type."""

    def __init__(self):
        self._handlers: Dict[Type, List[Callable]] = {}

    def subscribe(self, eventType: Type, handler: Callable):
        self._handlers.setdefault(eventType, []).append(handler)

    def unsubscribe(self, eventType: Type, handler: Callable):
        handlers = self._handlers.get(eventType, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event):
        for handler in list(self._handlers.get(type(event), [])):
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(event)
                else:
                    handler(event)
            except Exception as e:
                logger.error(f"Handler {getattr(handler, '__name__', handler)} failed on {type(event).__name__}: {e}")


async def publish(eventBus: Optional[EventBus], event):
    """Publish on eventBus when the service was given one."""
    if eventBus is not None:
        await eventBus.publish(event)
