def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"
    assert live.headers["X-Content-Type-Options"] == "nosniff"
    assert live.headers["X-Request-ID"]

    ready = client.get("/api/health/ready")
    assert ready.status_code in {200, 503}
    payload = ready.json()
    assert "database" in payload
    assert "realtime" in payload


def test_oversized_request_is_rejected(client):
    response = client.post(
        "/api/teacher/timetable/request-change",
        content=b"{}",
        headers={"Content-Length": "999999999", "Content-Type": "application/json"},
    )
    assert response.status_code == 413
