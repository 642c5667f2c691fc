"""
Order persistence

An order and its items are written in one commit; reads load items eagerly so
callers can serialize the aggregate after the session is closed.
"""

import uuid
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from marketplace.core.logging import get_logger
from marketplace.models import Order

logger = get_logger(__name__)


class OrderRepository:
    """Data access for Order aggregates"""

    @staticmethod
    def add(session: Session, order: Order) -> Order:
        """Insert an order with its items atomically and return the refreshed row"""
        session.add(order)
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.error(
                "order_persist_failed",
                order_id=str(order.id),
                buyer_id=order.buyer_id,
                exc_info=True,
            )
            raise
        session.refresh(order)
        return order

    @staticmethod
    def get(session: Session, order_id: uuid.UUID) -> Order | None:
        statement = (
            select(Order)
            .options(selectinload(Order.items))  # type: ignore[arg-type]
            .where(Order.id == order_id)
        )
        return session.exec(statement).first()

    @staticmethod
    def get_for_buyer(session: Session, order_id: uuid.UUID, buyer_id: str) -> Order | None:
        statement = (
            select(Order)
            .options(selectinload(Order.items))  # type: ignore[arg-type]
            .where(Order.id == order_id, Order.buyer_id == buyer_id)
        )
        return session.exec(statement).first()

    @staticmethod
    def list_for_buyer(session: Session, buyer_id: str) -> Sequence[Order]:
        statement = (
            select(Order)
            .options(selectinload(Order.items))  # type: ignore[arg-type]
            .where(Order.buyer_id == buyer_id)
            .order_by(Order.created_at.desc())  # type: ignore[attr-defined]
        )
        return session.exec(statement).all()

    @staticmethod
    def list_all(session: Session) -> Sequence[Order]:
        statement = (
            select(Order)
            .options(selectinload(Order.items))  # type: ignore[arg-type]
            .order_by(Order.created_at.desc())  # type: ignore[attr-defined]
        )
        return session.exec(statement).all()
