import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import config
from models import Base
from mlm_system.utils.valuation import MLMConfiguration
from mlm_system.services.team_service import RollupDepth


def get_session(databaseUrl: str = None):
    """Return the SQLAlchemy session factory and engine for the CRM database"""
    url = databaseUrl or config.DATABASE_URL
    connectArgs = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connectArgs)
    session_factory = sessionmaker(bind=engine)
    return session_factory, engine


def init_tables(engine):
    """Create the sellers and clients tables if missing"""
    Base.metadata.create_all(engine)


def configureLogging(level: str = None):
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def buildMLMConfiguration() -> MLMConfiguration:
    """Build the commission configuration from environment settings."""
    return MLMConfiguration.fromDefaults(
        unknownProductPoints=config.UNKNOWN_PRODUCT_POINTS,
        firstPalierMinimum=config.FIRST_PALIER_MINIMUM
    )


def getRollupDepth() -> RollupDepth:
    return RollupDepth(config.TEAM_ROLLUP_DEPTH)


# Process-wide defaults, passed explicitly to the services
mlmConfiguration = buildMLMConfiguration()
rollupDepth = getRollupDepth()

Session, _engine = get_session()
