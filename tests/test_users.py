from conftest import DEFAULT_PASSWORD, create_job, create_service, register


def test_public_profile_includes_role_profile(client, make_client):
    alice = register(make_client(), "alice", education="MSc", hourly_rate=40)

    response = client.get(f"/api/users/{alice['id']}")
    assert response.status_code == 200
    body = response.json()
    assert "password" not in body
    assert body["profile"]["education"] == "MSc"
    assert body["profile"]["hourly_rate"] == 40

    assert client.get("/api/users/999").status_code == 404


def test_update_own_profile(freelancer, employer):
    fc, alice = freelancer
    ec, _ = employer

    denied = ec.put(f"/api/users/{alice['id']}", data={"bio": "hacked"})
    assert denied.status_code == 403

    response = fc.put(
        f"/api/users/{alice['id']}",
        data={"bio": "Designer", "skills": "figma, , illustrator", "years_experience": "5"},
        files={"profile_picture": ("me.jpg", b"jpeg-bytes", "image/jpeg")},
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["bio"] == "Designer"
    assert updated["skills"] == ["figma", "illustrator"]
    assert updated["profile_picture"].startswith("/uploads/profiles/alice_")

    profile = fc.get(f"/api/users/{alice['id']}").json()["profile"]
    assert profile["years_experience"] == 5


def test_update_profile_email_taken(freelancer, employer):
    fc, alice = freelancer
    response = fc.put(f"/api/users/{alice['id']}", data={"email": "bob@example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already exists"


def test_change_password(freelancer, make_client):
    fc, alice = freelancer
    url = f"/api/users/{alice['id']}/change-password"

    missing = fc.put(url, json={"current_password": DEFAULT_PASSWORD})
    assert missing.status_code == 400

    mismatch = fc.put(url, json={
        "current_password": DEFAULT_PASSWORD, "new_password": "newpass1", "confirm_password": "newpass2",
    })
    assert mismatch.json()["detail"] == "New passwords do not match"

    short = fc.put(url, json={"current_password": DEFAULT_PASSWORD, "new_password": "abc", "confirm_password": "abc"})
    assert short.status_code == 400

    wrong = fc.put(url, json={
        "current_password": "not-it", "new_password": "newpass1", "confirm_password": "newpass1",
    })
    assert wrong.json()["detail"] == "Current password is incorrect"

    ok = fc.put(url, json={
        "current_password": DEFAULT_PASSWORD, "new_password": "newpass1", "confirm_password": "newpass1",
    })
    assert ok.status_code == 200
    assert ok.json()["message"] == "Password updated successfully"

    fresh = make_client()
    assert fresh.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD}).status_code == 401
    assert fresh.post("/api/auth/login", json={"username": "alice", "password": "newpass1"}).status_code == 200


def test_user_services_and_jobs_are_public(freelancer, employer, client):
    fc, alice = freelancer
    ec, bob = employer
    create_service(fc)
    create_job(ec)

    assert len(client.get(f"/api/users/{alice['id']}/services").json()) == 1
    assert len(client.get(f"/api/users/{bob['id']}/jobs").json()) == 1
    assert client.get(f"/api/users/{alice['id']}/applications").status_code == 401


def test_user_stats(freelancer, employer, client):
    fc, alice = freelancer
    ec, bob = employer
    service = create_service(fc)
    job = create_job(ec)

    ec.post(f"/api/services/{service['id']}/orders")
    ec.post(f"/api/services/{service['id']}/reviews", json={"rating": 5})
    ec.post(f"/api/services/{service['id']}/reviews", json={"rating": 2})
    fc.post(f"/api/jobs/{job['id']}/applications", data={"cover_letter": "hi"})

    freelancer_stats = client.get(f"/api/users/{alice['id']}/stats").json()
    assert freelancer_stats == {
        "orders_made": 0,
        "orders_received": 1,
        "positive_reviews": 1,
        "total_reviews": 2,
        "active_services": 1,
        "job_applications": 1,
    }

    employer_stats = client.get(f"/api/users/{bob['id']}/stats").json()
    assert employer_stats["orders_made"] == 1
    assert employer_stats["active_jobs"] == 1
    assert employer_stats["applications_received"] == 1


def test_change_password_rejects_password_over_bcrypt_limit(freelancer, make_client):
    fc, alice = freelancer
    too_long = "a" * 80

    response = fc.put(f"/api/users/{alice['id']}/change-password", json={
        "current_password": DEFAULT_PASSWORD, "new_password": too_long, "confirm_password": too_long,
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "New password cannot be longer than 72 bytes"

    # 舊密碼仍然有效
    fresh = make_client()
    assert fresh.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD}).status_code == 200
