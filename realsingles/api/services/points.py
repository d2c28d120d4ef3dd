"""
Points ledger.

Every balance change goes through `apply_points`, which updates
`users.points_balance` and writes the matching point_transactions row in the
same unit of work.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...db.models import PointTransaction, User
from ..errors import InvalidRequestError

logger = logging.getLogger(__name__)


def locked_balance(db: Session, user_id: UUID) -> int:
    """Current balance read with a row lock held until the transaction ends."""
    balance = (
        db.query(User.points_balance)
        .filter(User.id == user_id)
        .with_for_update()
        .scalar()
    )
    return balance or 0


def apply_points(
    db: Session,
    user: User,
    amount: int,
    transaction_type: str,
    description: Optional[str] = None,
    reference_id: Optional[UUID] = None,
    reference_type: Optional[str] = None,
) -> PointTransaction:
    """
    Add `amount` (negative to deduct) to a user's balance and record it.

    The balance is re-read under a row lock; the caller commits.

    Raises:
        InvalidRequestError: if the balance would go below zero
    """
    balance = locked_balance(db, user.id)
    new_balance = balance + amount
    if new_balance < 0:
        raise InvalidRequestError(
            "Insufficient points",
            details={"balance": balance, "required": -amount},
        )

    user.points_balance = new_balance
    transaction = PointTransaction(
        user_id=user.id,
        amount=amount,
        balance_after=new_balance,
        transaction_type=transaction_type,
        description=description,
        reference_id=reference_id,
        reference_type=reference_type,
    )
    db.add(transaction)
    db.flush()
    logger.info(f"Points {amount:+d} for {user.id} ({transaction_type}), balance={new_balance}")
    return transaction


def serialize_transaction(transaction: PointTransaction) -> Dict[str, Any]:
    return {
        "id": str(transaction.id),
        "amount": transaction.amount,
        "balance_after": transaction.balance_after,
        "transaction_type": transaction.transaction_type,
        "description": transaction.description,
        "reference_id": str(transaction.reference_id) if transaction.reference_id else None,
        "reference_type": transaction.reference_type,
        "created_at": transaction.created_at.isoformat() if transaction.created_at else None,
    }
