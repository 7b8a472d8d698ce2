"""Shared fixtures: in-memory database and record factories."""
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from models import Base, Seller, SaleRecord
from mlm_system.utils.time_machine import timeMachine
from mlm_system.events.event_bus import EventBus
from mlm_system.utils.valuation import MLMConfiguration


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    db = sessionmaker(bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture(autouse=True)
def reset_clock():
    yield
    timeMachine.resetToRealTime()


@pytest.fixture
def configuration():
    return MLMConfiguration()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def make_seller(session):
    def _make(code, sponsorCode=None, createdAt=None, isActive=True):
        seller = Seller(
            sellerCode=code,
            sponsorCode=sponsorCode,
            firstname=code.capitalize(),
            surname="Test",
            createdAt=createdAt or datetime(2026, 1, 1),
            isActive=isActive,
        )
        session.add(seller)
        session.flush()
        return seller

    return _make


@pytest.fixture
def make_sale(session):
    def _make(seller, produit, dateInstallation, deletedAt=None, prenom="Jean", nom="Dupont"):
        sale = SaleRecord(
            sellerID=seller.sellerID,
            produit=produit,
            dateInstallation=dateInstallation,
            deletedAt=deletedAt,
            prenom=prenom,
            nom=nom,
        )
        session.add(sale)
        session.flush()
        return sale

    return _make
