from datetime import datetime, timezone

from bson import ObjectId


def _order_on(day: str, hour: int, quantity: int, price: float) -> dict:
    created = datetime.strptime(day, "%Y-%m-%d").replace(hour=hour, tzinfo=timezone.utc)
    return {
        "_id": ObjectId.from_datetime(created),
        "plantId": str(ObjectId()),
        "quantity": quantity,
        "price": price,
        "seller": "sam@plant.net",
        "customer": {"email": "ana@plant.net"},
    }


def test_admin_stat_aggregates(login, plant, db):
    plant()
    plant(name="Fern")
    db["orders"].insert_many([
        _order_on("2025-01-02", 9, 2, 20),
        _order_on("2025-01-01", 9, 1, 10),
        _order_on("2025-01-02", 15, 3, 45),
    ])
    admin = login("boss@plant.net", role="admin")
    response = admin.get("/admin-stat")
    assert response.status_code == 200
    stats = response.json()
    assert stats["totalUser"] == 1
    assert stats["totalPlants"] == 2
    assert stats["totalRevenue"] == 75
    assert stats["totalOrder"] == 3
    assert stats["chartData"] == [
        {"date": "2025-01-01", "quantity": 1, "price": 10, "order": 1},
        {"date": "2025-01-02", "quantity": 5, "price": 65, "order": 2},
    ]


def test_admin_stat_without_orders(login):
    admin = login("boss@plant.net", role="admin")
    stats = admin.get("/admin-stat").json()
    assert stats["totalRevenue"] == 0
    assert stats["totalOrder"] == 0
    assert stats["chartData"] == []


def test_admin_stat_skips_non_numeric_prices(login, db):
    loose = _order_on("2025-01-03", 9, 1, 30)
    loose["price"] = "thirty"
    db["orders"].insert_many([loose, _order_on("2025-01-03", 10, 2, 12)])
    admin = login("boss@plant.net", role="admin")
    stats = admin.get("/admin-stat").json()
    assert stats["totalRevenue"] == 12
    assert stats["totalOrder"] == 2
    assert stats["chartData"] == [{"date": "2025-01-03", "quantity": 3, "price": 12, "order": 2}]
