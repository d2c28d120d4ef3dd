"""
Points ledger and redemptions read the stored balance, not the loaded one.
"""

import pytest
from sqlalchemy import update

from realsingles.api.errors import InvalidRequestError
from realsingles.api.services.points import apply_points, locked_balance
from realsingles.api.services.rewards import RewardsService
from realsingles.db.models import Order, PointTransaction, Product, User


def _spend_behind_the_session(db_session, user, balance):
    """Change the stored balance without touching the loaded User."""
    db_session.execute(
        update(User)
        .where(User.id == user.id)
        .values(points_balance=balance)
        .execution_options(synchronize_session=False)
    )


def test_apply_points_uses_stored_balance(db_session, make_user):
    user = make_user(points_balance=500)
    _spend_behind_the_session(db_session, user, 100)
    assert user.points_balance == 500

    with pytest.raises(InvalidRequestError) as exc:
        apply_points(db_session, user, -300, "redemption")
    assert exc.value.message == "Insufficient points"
    assert exc.value.details == {"balance": 100, "required": 300}


def test_apply_points_back_to_back(db_session, make_user):
    user = make_user(points_balance=0)
    apply_points(db_session, user, 50, "referral")
    apply_points(db_session, user, 25, "admin_adjustment")
    db_session.commit()

    assert locked_balance(db_session, user.id) == 75
    ledger = (
        db_session.query(PointTransaction)
        .filter(PointTransaction.user_id == user.id)
        .order_by(PointTransaction.balance_after)
        .all()
    )
    assert [t.balance_after for t in ledger] == [50, 75]


def test_place_order_rechecks_balance(db_session, make_user):
    product = Product(name="Movie Tickets", points_cost=300, category="experience")
    db_session.add(product)
    db_session.commit()
    user = make_user(points_balance=500)
    _spend_behind_the_session(db_session, user, 100)

    with pytest.raises(InvalidRequestError) as exc:
        RewardsService(db_session).place_order(user, product.id)
    assert exc.value.message == "Insufficient points"
    assert db_session.query(Order).count() == 0


def test_place_order_rechecks_stock(db_session, make_user):
    product = Product(name="Mug", points_cost=10, category="merchandise", stock_quantity=1)
    db_session.add(product)
    db_session.commit()
    user = make_user(points_balance=100)
    db_session.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(stock_quantity=0)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(InvalidRequestError) as exc:
        RewardsService(db_session).place_order(user, product.id)
    assert exc.value.message == "Product is out of stock"
