"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"


class ProductionJobStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ResearchJobStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class CompanyResearchStatus(str, Enum):
    LOCKED = "LOCKED"
    AVAILABLE = "AVAILABLE"
    RESEARCHING = "RESEARCHING"
    COMPLETED = "COMPLETED"


class BotStrategy(str, Enum):
    LIQUIDITY = "LIQUIDITY"
    PRODUCER = "PRODUCER"


class LedgerEntryType(str, Enum):
    # Reservation moves (delta_cash = 0, delta_reserved != 0)
    ORDER_RESERVE = "ORDER_RESERVE"
    # Cash transfers between companies
    TRADE_SETTLEMENT = "TRADE_SETTLEMENT"
    CONTRACT_SETTLEMENT = "CONTRACT_SETTLEMENT"
    # Sinks
    SHIPMENT_FEE = "SHIPMENT_FEE"
    RESEARCH_PAYMENT = "RESEARCH_PAYMENT"
    PRODUCTION_COST = "PRODUCTION_COST"
    WORKFORCE_SALARY_EXPENSE = "WORKFORCE_SALARY_EXPENSE"
    WORKFORCE_RECRUITMENT_EXPENSE = "WORKFORCE_RECRUITMENT_EXPENSE"
    # Marker rows (delta 0)
    PRODUCTION_COMPLETION = "PRODUCTION_COMPLETION"
    # Operator injections
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"


class LedgerReferenceType(str, Enum):
    MARKET_ORDER = "MARKET_ORDER"
    MARKET_TRADE_BUY = "MARKET_TRADE_BUY"
    MARKET_TRADE_SELL = "MARKET_TRADE_SELL"
    RESEARCH_NODE = "RESEARCH_NODE"
    PRODUCTION_JOB_COMPLETION = "PRODUCTION_JOB_COMPLETION"
