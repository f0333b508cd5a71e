from conftest import create_service


def test_create_and_list_services(freelancer, client):
    fc, alice = freelancer
    service = create_service(fc, currency="USD", delivery_time="3 days")

    assert service["user_id"] == alice["id"]
    assert service["price"] == 150
    assert service["status"] == "active"

    create_service(fc, title="Site", category="web")

    listed = client.get("/api/services", params={"category": "design"}).json()
    assert [s["id"] for s in listed] == [service["id"]]
    assert listed[0]["user"]["username"] == "alice"
    assert "password" not in listed[0]["user"]

    detail = client.get(f"/api/services/{service['id']}")
    assert detail.status_code == 200
    assert detail.json()["title"] == "Logo design"


def test_create_service_requires_login(client):
    response = client.post("/api/services", data={
        "title": "x", "description": "y", "price": "1", "category": "z",
    })
    assert response.status_code == 401


def test_service_image_upload(freelancer):
    fc, _ = freelancer
    response = fc.post(
        "/api/services",
        data={"title": "Icon", "description": "icons", "price": "20", "category": "design"},
        files={"image": ("cover art.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 201
    image = response.json()["image"]
    assert image.startswith("/uploads/services/alice_")
    assert image.endswith("cover_art.png")

    served = fc.get(image)
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"


def test_unknown_service_ids_are_404(client):
    assert client.get("/api/services/999").status_code == 404
    assert client.get("/api/services/not-an-id").status_code == 404
    assert client.get("/api/services/507f1f77bcf86cd799439011").status_code == 404


def test_update_service_owner_only(freelancer, employer):
    fc, _ = freelancer
    ec, _ = employer
    service = create_service(fc)

    denied = ec.put(f"/api/services/{service['id']}", json={"price": 1})
    assert denied.status_code == 403

    updated = fc.put(f"/api/services/{service['id']}", json={"price": 175, "status": "paused"})
    assert updated.status_code == 200
    assert updated.json()["price"] == 175
    assert updated.json()["status"] == "paused"


def test_order_service(freelancer, employer):
    fc, alice = freelancer
    ec, bob = employer
    service = create_service(fc)

    own = fc.post(f"/api/services/{service['id']}/orders")
    assert own.status_code == 400
    assert own.json()["detail"] == "You cannot order your own service"

    response = ec.post(f"/api/services/{service['id']}/orders", json={"requirements": "Blue please"})
    assert response.status_code == 201
    order = response.json()
    assert order["buyer_id"] == bob["id"]
    assert order["seller_id"] == alice["id"]
    assert order["total_price"] == 150
    assert order["status"] == "pending"

    mine = ec.get(f"/api/users/{bob['id']}/orders").json()
    assert [o["id"] for o in mine] == [order["id"]]
    assert mine[0]["service"]["title"] == "Logo design"

    assert ec.get(f"/api/users/{alice['id']}/orders").status_code == 403


def test_checkout_records_payment(freelancer, employer, make_client):
    fc, _ = freelancer
    ec, bob = employer
    service = create_service(fc)

    response = ec.post("/api/orders", json={
        "service_id": str(service["id"]),
        "payment_method": "card",
        "payment_details": {"card_name": "Bob", "card_number_last4": "4242", "expiry_date": "12/30"},
    })
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "paid"
    assert order["total_price"] == 150
    assert "payment_details" not in order

    detail = ec.get(f"/api/orders/{order['id']}").json()
    assert len(detail["payments"]) == 1
    assert detail["payments"][0]["card_number_last4"] == "4242"
    assert detail["payments"][0]["currency"] == "DNT"

    # 賣方也看得到，第三人不行
    assert fc.get(f"/api/orders/{order['id']}").status_code == 200
    outsider = make_client()
    outsider.post("/api/auth/register", json={
        "username": "eve", "email": "eve@example.com", "password": "secret123",
        "confirm_password": "secret123", "full_name": "Eve",
    })
    assert outsider.get(f"/api/orders/{order['id']}").status_code == 403


def test_checkout_rejects_bad_card_digits(freelancer, employer):
    fc, _ = freelancer
    ec, _ = employer
    service = create_service(fc)

    response = ec.post("/api/orders", json={
        "service_id": service["id"],
        "payment_details": {"card_name": "Bob", "card_number_last4": "42", "expiry_date": "12/30"},
    })
    assert response.status_code == 422


def test_reviews(freelancer, employer, client):
    fc, _ = freelancer
    ec, bob = employer
    service = create_service(fc)

    own = fc.post(f"/api/services/{service['id']}/reviews", json={"rating": 5})
    assert own.status_code == 400

    invalid = ec.post(f"/api/services/{service['id']}/reviews", json={"rating": 6})
    assert invalid.status_code == 422

    created = ec.post(f"/api/services/{service['id']}/reviews", json={"rating": 4, "comment": "  Great work  "})
    assert created.status_code == 201
    assert created.json()["comment"] == "Great work"
    assert created.json()["user_id"] == bob["id"]

    reviews = client.get(f"/api/services/{service['id']}/reviews").json()
    assert len(reviews) == 1
    assert reviews[0]["user"]["username"] == "bob"
