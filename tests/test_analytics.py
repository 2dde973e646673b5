import hashlib
import hmac
import urllib.parse
from datetime import UTC, datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.dependencies import check_init_data, get_user_timezone, verify_telegram_authentication
from app.models.schemas import Category, TransactionType
from app.models.sql import CategoryDB, TransactionDB
from app.services.analytics import AnalyticsService


@pytest.fixture
async def analytics_data(session):
    cat1 = CategoryDB(id=1, user_id="1", name="Salário", type="income")
    cat2 = CategoryDB(id=2, user_id="1", name="Delivery", type="expense")
    cat3 = CategoryDB(id=3, user_id="1", name="Games", type="expense")
    session.add_all([cat1, cat2, cat3])
    await session.commit()

    session.add_all(
        [
            TransactionDB(user_id="1", category_id=1, amount=3000, date=datetime(2024, 3, 1, 9, 0)),
            TransactionDB(
                user_id="1", category_id=2, amount=45.5, date=datetime(2024, 3, 15, 1, 30), vendor="iFood"
            ),
            TransactionDB(user_id="1", category_id=3, amount=100, date=datetime(2024, 3, 10, 15, 0), note="Steam"),
            TransactionDB(user_id="2", category_id=3, amount=999, date=datetime(2024, 3, 10, 15, 0)),
        ]
    )
    await session.commit()


@pytest.mark.asyncio
async def test_transactions_are_mapped(session, analytics_data):
    txs = await AnalyticsService(session).get_user_transactions("1")

    assert len(txs) == 3
    by_amount = {t.amount: t for t in txs}
    assert by_amount[3000].type == TransactionType.INCOME
    assert by_amount[3000].category == Category.SALARY
    assert by_amount[45.5].vendor == "iFood"
    assert by_amount[45.5].description == "Delivery"
    assert by_amount[100].description == "Steam"
    # Unknown category names fall back to OTHERS
    assert by_amount[100].category == Category.OTHERS
    assert by_amount[3000].date.tzinfo is not None


@pytest.mark.asyncio
async def test_dates_follow_user_timezone(session, analytics_data):
    tz = await get_user_timezone("180")

    txs = await AnalyticsService(session).get_user_transactions("1", tz)
    delivery = next(t for t in txs if t.category == Category.DELIVERY)

    assert (delivery.date.day, delivery.date.hour) == (14, 22)


@pytest.mark.asyncio
async def test_balance_and_goal(session, analytics_data):
    service = AnalyticsService(session)

    assert await service.get_balance("1") == pytest.approx(2854.5)
    assert await service.get_balance("nobody") == 0
    assert await service.get_goal("1") == 100000


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header, expected",
    [
        (None, UTC),
        ("oops", UTC),
        ("180", timezone(timedelta(hours=-3))),
        ("-330", timezone(timedelta(hours=5, minutes=30))),
        ("99999", UTC),
    ],
)
async def test_timezone_header(header, expected):
    assert await get_user_timezone(header) == expected


def _signed_init_data(token, user_json='{"id": 42, "first_name": "Ana"}'):
    fields = {"auth_date": "1700000000", "user": user_json}
    check_string = "\n".join(f"{k}={v}" for k, v in sorted(fields.items()))
    secret = hmac.new(b"WebAppData", token.encode(), hashlib.sha256).digest()
    fields["hash"] = hmac.new(secret, check_string.encode(), hashlib.sha256).hexdigest()
    return urllib.parse.urlencode(fields)


def test_init_data_is_verified():
    user = check_init_data(_signed_init_data("123:abc"), "123:abc")

    assert user == {"id": "42", "first_name": "Ana"}


def test_tampered_init_data_is_rejected():
    with pytest.raises(HTTPException) as exc:
        check_init_data(_signed_init_data("123:abc"), "other-token")

    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_missing_auth_header():
    with pytest.raises(HTTPException) as exc:
        await verify_telegram_authentication(None)

    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_invalid_init_data_is_401(mocker):
    mocker.patch("app.dependencies.BOT_TOKEN", "123:abc")

    with pytest.raises(HTTPException) as exc:
        await verify_telegram_authentication("no-hash-here")

    assert exc.value.status_code == 401
