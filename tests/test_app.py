from app.server.main import describe_validation_error


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "success"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["timestamp"]


def test_cors_headers_on_responses(client):
    response = client.get("/health", headers={"Origin": "https://yobaexo.com"})

    assert response.headers["access-control-allow-origin"] in ("*", "https://yobaexo.com")


def test_cors_preflight(client):
    response = client.options(
        "/api/create-order",
        headers={
            "Origin": "https://yobaexo.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )

    assert response.status_code == 200
    assert "POST" in response.headers["access-control-allow-methods"]


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_describe_validation_error():
    assert (
        describe_validation_error({"loc": ("body", "amount"), "msg": "Field required"})
        == "amount: Field required"
    )
    assert (
        describe_validation_error(
            {"loc": ("body",), "msg": "Value error, order_id or payment_id is required"}
        )
        == "order_id or payment_id is required"
    )
