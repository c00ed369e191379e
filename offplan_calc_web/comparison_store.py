"""Saved payment plan scenarios for side-by-side comparison.

Each saved scenario records the headline figures of a calculation (plan,
price, cash due by handover, grand total) as real columns so the comparison
table can be ordered in SQL. The full summary and cash-flow timeline are kept
as JSON for redisplay. Any SQLAlchemy URL works; SQLite is the local default.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

#: Orderings offered for a user's saved scenarios.
SORT_KEYS = ("saved", "grand_total", "paid_by_handover")


class SavedScenarioModel(Base):
    __tablename__ = "offplan_scenarios"

    # Insertion order; breaks ties between rows saved in the same instant.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    scenario_id = Column(String(64), unique=True, nullable=False)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    plan_id = Column(String(64), nullable=False)
    property_price = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    paid_by_handover = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    grand_total = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    summary_json = Column(Text, nullable=False)
    timeline_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


def _ordering(sort: str):
    if sort == "grand_total":
        return (SavedScenarioModel.grand_total.asc(), SavedScenarioModel.seq.asc())
    if sort == "paid_by_handover":
        return (SavedScenarioModel.paid_by_handover.asc(), SavedScenarioModel.seq.asc())
    if sort == "saved":
        return (SavedScenarioModel.created_at.asc(), SavedScenarioModel.seq.asc())
    raise ValueError(f"Unknown sort key {sort!r}; expected one of {', '.join(SORT_KEYS)}")


class ComparisonStore:
    """Per-user saved scenarios, capped at ``max_per_user`` (oldest dropped first)."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: Optional[str], sort: str = "saved") -> List[Dict[str, Any]]:
        order = _ordering(sort)
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(SavedScenarioModel)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(*order)
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def add_scenario(
        self,
        user_token: Optional[str],
        scenario_id: str,
        name: str,
        summary: Dict[str, Any],
        timeline: List[Dict[str, Any]],
    ) -> None:
        """Save a serialized calculation; ``summary`` is ``serialize_summary`` output."""
        if not user_token:
            return
        row = SavedScenarioModel(
            scenario_id=scenario_id,
            user_token=user_token,
            name=name,
            plan_id=str(summary.get("plan_id", "")),
            property_price=float(summary.get("property_price", 0)),
            paid_by_handover=float(summary.get("paid_by_handover", 0)),
            grand_total=float(summary.get("grand_total", 0)),
            summary_json=json.dumps(summary),
            timeline_json=json.dumps(timeline),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        self._trim_user(user_token)

    def remove_scenario(self, user_token: Optional[str], scenario_id: Optional[str]) -> None:
        if not user_token or not scenario_id:
            return
        with self._session_factory() as session:
            session.execute(
                delete(SavedScenarioModel).where(
                    SavedScenarioModel.user_token == user_token,
                    SavedScenarioModel.scenario_id == scenario_id,
                )
            )
            session.commit()

    def clear_scenarios(self, user_token: Optional[str]) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(delete(SavedScenarioModel).where(SavedScenarioModel.user_token == user_token))
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if self._max_per_user <= 0:
            return
        with self._session_factory() as session:
            stale = (
                session.execute(
                    select(SavedScenarioModel.seq)
                    .where(SavedScenarioModel.user_token == user_token)
                    .order_by(SavedScenarioModel.created_at.desc(), SavedScenarioModel.seq.desc())
                    .offset(self._max_per_user)
                )
                .scalars()
                .all()
            )
            if stale:
                session.execute(delete(SavedScenarioModel).where(SavedScenarioModel.seq.in_(stale)))
                session.commit()

    @staticmethod
    def _to_dict(row: SavedScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.scenario_id,
            "name": row.name,
            "plan_id": row.plan_id,
            "property_price": row.property_price,
            "paid_by_handover": row.paid_by_handover,
            "grand_total": row.grand_total,
            "summary": json.loads(row.summary_json),
            "timeline": json.loads(row.timeline_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str], max_per_user: int = 10) -> ComparisonStore:
    return ComparisonStore(url or "sqlite:///comparison_data.sqlite3", max_per_user=max_per_user)
