from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Index
)
from shared.models.base import Base, TimestampMixin, JSONType, utcnow


class TrackedToken(Base, TimestampMixin):
    __tablename__ = "tracked_tokens"

    address = Column(String(66), primary_key=True)  # lower-cased
    network = Column(String(20), primary_key=True)
    symbol = Column(String(40), default="UNKNOWN")
    name = Column(String(100), default="Unknown Token")

    # Baseline from first analysis
    original_score = Column(Integer, nullable=False)
    original_price = Column(Float, default=0.0)
    original_liquidity = Column(Float, default=0.0)
    original_honeypot = Column(Boolean, default=False)
    original_analyzed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Latest re-check
    current_price = Column(Float)
    current_liquidity = Column(Float)
    price_change_24h = Column(Float)
    last_checked_at = Column(DateTime(timezone=True))

    status = Column(String(20), nullable=False, default="active")  # active, suspicious, rugged, delisted
    rug_indicators = Column(JSONType, default=list)

    # Detection that moved the token out of active; kept until the alert is posted
    rug_type = Column(String(30))
    rug_severity = Column(String(20))
    rug_price_drop = Column(Float)
    rug_liquidity_drop = Column(Float)
    rug_detected_at = Column(DateTime(timezone=True))

    # Set once, when the alert goes out
    incident_posted_at = Column(DateTime(timezone=True))
    incident_hash = Column(String(120))

    __table_args__ = (
        Index("idx_tracked_status_checked", "status", "last_checked_at"),
    )


class RugIncidentRecord(Base):
    __tablename__ = "rug_incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_address = Column(String(66), nullable=False)
    token_symbol = Column(String(40))
    token_name = Column(String(100))
    network = Column(String(20), nullable=False)

    rug_type = Column(String(30), nullable=False)
    severity = Column(String(20), nullable=False)

    original_price = Column(Float)
    current_price = Column(Float)
    price_drop_percent = Column(Float)
    original_liquidity = Column(Float)
    current_liquidity = Column(Float)
    liquidity_drop_percent = Column(Float)

    indicators = Column(JSONType, default=list)
    original_score = Column(Integer)
    original_analyzed_at = Column(DateTime(timezone=True))
    we_predicted_it = Column(Boolean, default=False)

    detected_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    posted_at = Column(DateTime(timezone=True))
    post_hash = Column(String(120))

    __table_args__ = (
        Index("idx_incident_token_detected", "token_address", "detected_at"),
        Index("idx_incident_detected", "detected_at"),
    )
