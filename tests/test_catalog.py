from uuid import uuid4


def test_list_products_with_filters(client, make_product):
    make_product(name="RTX 4070", category="gpu")
    make_product(name="RTX 4090", category="gpu")
    make_product(name="Ryzen 5", category="cpu")

    response = client.get("/api/products", params={"keyword": "rtx"})
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = client.get("/api/products", params={"category": "cpu"})
    assert [p["name"] for p in response.json()["products"]] == ["Ryzen 5"]


def test_list_products_paginates(client, make_product):
    for i in range(5):
        make_product(name=f"Fan {i}", category="cooling")

    response = client.get("/api/products", params={"page": 2, "pageSize": 2})

    data = response.json()
    assert data["page"] == 2
    assert data["pages"] == 3
    assert len(data["products"]) == 2


def test_get_product(client, make_product):
    product = make_product(price_cents=7999)

    response = client.get(f"/api/products/{product.id}")

    assert response.status_code == 200
    assert response.json()["price"] == 79.99
    assert response.json()["countInStock"] == 10


def test_get_missing_product(client):
    assert client.get(f"/api/products/{uuid4()}").status_code == 404


def test_restock_requires_admin(client, make_product, auth_headers, admin_headers):
    product = make_product(count_in_stock=0)

    denied = client.post(f"/api/products/{product.id}/restock", json={"quantity": 5}, headers=auth_headers)
    assert denied.status_code == 403

    response = client.post(f"/api/products/{product.id}/restock", json={"quantity": 5}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["countInStock"] == 5


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert "X-Request-ID" in response.headers


def test_unknown_category_is_rejected(client):
    response = client.get("/api/products", params={"category": "toasters"})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PARAMETERS"
