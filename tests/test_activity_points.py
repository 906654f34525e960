from collections import Counter
from datetime import datetime, timedelta

import pytest

from estate_store.core.database import utcnow
from estate_store.core.exceptions import ValidationError
from estate_store.models import CustomerPoints
from estate_store.services.points import accumulate, calculate_level, months_ago


@pytest.mark.parametrize("total,level", [
    (0, "Bronze"),
    (199, "Bronze"),
    (200, "Silver"),
    (499, "Silver"),
    (500, "Gold"),
    (999, "Gold"),
    (1000, "Platinum"),
    (25000, "Platinum"),
])
def test_calculate_level_thresholds(total, level):
    assert calculate_level(total) == level


def test_points_row_is_created_on_first_activity(storage, agent):
    assert storage.get_customer_points(agent["id"]) is None

    storage.add_customer_activity({"user_id": agent["id"], "activity_type": "login", "points": 10})

    points = storage.get_customer_points(agent["id"])
    assert points["total_points"] == 10
    assert points["points_this_month"] == 10
    assert points["current_level"] == "Bronze"


def test_leveling_is_monotone_and_consistent(storage, agent):
    previous = 0
    for amount in (0, 150, 49, 1, 300, 499, 1, 0, 5):
        storage.add_customer_activity({
            "user_id": agent["id"], "activity_type": "property_view", "points": amount,
        })
        points = storage.get_customer_points(agent["id"])
        assert points["total_points"] >= previous
        assert points["current_level"] == calculate_level(points["total_points"])
        previous = points["total_points"]

    assert previous == 1005
    assert storage.get_customer_points(agent["id"])["current_level"] == "Platinum"


def test_total_points_equals_sum_of_activity_points(storage, agent):
    for amount in (5, 10, 0, 25):
        storage.add_customer_activity({"user_id": agent["id"], "activity_type": "search", "points": amount})

    activities = storage.get_customer_activities(agent["id"])
    assert sum(a["points"] for a in activities) == storage.get_customer_points(agent["id"])["total_points"]


def test_999_is_gold_and_1000_is_platinum(storage, agent):
    storage.add_customer_activity({"user_id": agent["id"], "activity_type": "bonus", "points": 999})
    assert storage.get_customer_points(agent["id"])["current_level"] == "Gold"

    storage.add_customer_activity({"user_id": agent["id"], "activity_type": "bonus", "points": 1})
    assert storage.get_customer_points(agent["id"])["current_level"] == "Platinum"


def test_negative_points_are_rejected_without_writing(storage, agent):
    with pytest.raises(ValidationError):
        storage.add_customer_activity({"user_id": agent["id"], "activity_type": "refund", "points": -5})

    assert storage.get_customer_activities(agent["id"]) == []
    assert storage.get_customer_points(agent["id"]) is None


def test_activity_for_unknown_user_or_property_is_rejected(storage, agent):
    with pytest.raises(ValidationError):
        storage.add_customer_activity({"user_id": "ghost", "activity_type": "login", "points": 1})
    with pytest.raises(ValidationError):
        storage.add_customer_activity({
            "user_id": agent["id"], "activity_type": "property_view", "property_id": "missing",
        })


def test_activity_record_shape(storage, agent, add_property):
    prop = add_property()

    activity = storage.add_customer_activity({
        "user_id": agent["id"],
        "activity_type": "favorite_add",
        "property_id": prop["id"],
        "metadata": {"source": "map"},
    })

    assert activity["points"] == 0
    assert activity["metadata"] == {"source": "map"}
    assert activity["property_id"] == prop["id"]


def test_activities_are_newest_first_and_limited(storage, agent, at):
    for minute in (3, 1, 2):
        storage.add_customer_activity({
            "user_id": agent["id"], "activity_type": f"step-{minute}", "created_at": at(minute),
        })

    assert [a["activity_type"] for a in storage.get_customer_activities(agent["id"])] == [
        "step-3", "step-2", "step-1",
    ]
    assert len(storage.get_customer_activities(agent["id"], limit=2)) == 2
    with pytest.raises(ValidationError):
        storage.get_customer_activities(agent["id"], limit=-1)


def test_points_this_month_restarts_in_a_new_month():
    points = CustomerPoints.new("user-1")

    accumulate(points, 40, datetime(2024, 1, 20, 10, 0))
    accumulate(points, 10, datetime(2024, 1, 31, 23, 0))
    assert points.points_this_month == 50

    accumulate(points, 7, datetime(2024, 2, 1, 8, 0))
    assert points.points_this_month == 7
    assert points.total_points == 57
    assert points.last_activity == datetime(2024, 2, 1, 8, 0)


def test_months_ago_clamps_to_month_length():
    assert months_ago(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)
    assert months_ago(datetime(2024, 1, 15), 12) == datetime(2023, 1, 15)


def test_analytics_aggregates(storage, agent):
    now = utcnow()
    events = [
        ("property_view", 5, now - timedelta(days=2)),
        ("property_view", 5, now - timedelta(days=2, minutes=5)),
        ("search", 2, now - timedelta(days=5)),
        ("inquiry_sent", 20, now - timedelta(days=40)),
        ("login", 1, now - timedelta(days=400)),
    ]
    for activity_type, points, created_at in events:
        storage.add_customer_activity({
            "user_id": agent["id"], "activity_type": activity_type,
            "points": points, "created_at": created_at,
        })

    analytics = storage.get_customer_analytics(agent["id"])

    assert analytics["total_activities"] == 5
    assert analytics["activities_by_type"] == [
        {"type": "inquiry_sent", "count": 1, "points": 20},
        {"type": "login", "count": 1, "points": 1},
        {"type": "property_view", "count": 2, "points": 10},
        {"type": "search", "count": 1, "points": 2},
    ]

    daily = Counter()
    for _, points, created_at in events[:3]:
        daily[created_at.strftime("%Y-%m-%d")] += points
    assert analytics["points_history"] == [
        {"date": day, "points": daily[day]} for day in sorted(daily)
    ]

    monthly = Counter(created_at.strftime("%Y-%m") for _, _, created_at in events[:4])
    assert analytics["monthly_activity"] == [
        {"month": month, "count": monthly[month]} for month in sorted(monthly)
    ]


def test_analytics_for_user_without_activity(storage, agent):
    assert storage.get_customer_analytics(agent["id"]) == {
        "total_activities": 0,
        "activities_by_type": [],
        "points_history": [],
        "monthly_activity": [],
    }
