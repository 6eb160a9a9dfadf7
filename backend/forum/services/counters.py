"""Denormalized counter maintenance.

Counters are changed with a single UPDATE so concurrent requests cannot lose
increments; decrements never go below zero.
"""
from sqlalchemy import case
from sqlalchemy.orm import InstrumentedAttribute, Session


def increment(db: Session, column: InstrumentedAttribute, row_id: str, amount: int = 1) -> None:
    model = column.class_
    db.query(model).filter(model.id == row_id).update(
        {column: column + amount},
        synchronize_session=False,
    )


def decrement(db: Session, column: InstrumentedAttribute, row_id: str, amount: int = 1) -> None:
    model = column.class_
    db.query(model).filter(model.id == row_id).update(
        {column: case((column > amount, column - amount), else_=0)},
        synchronize_session=False,
    )
