import math

from conftest import create_category, create_product


def test_list_products_paginates(client, admin_headers, category):
    for i in range(5):
        create_product(client, admin_headers, category["id"], name=f"Tee {i}", slug=f"tee-{i}")

    first = client.get("/api/products", params={"page": 1, "limit": 2}).json()
    assert first["total"] == 5
    assert first["pages"] == math.ceil(5 / 2) == 3
    assert len(first["products"]) == 2
    # newest first by default
    assert first["products"][0]["slug"] == "tee-4"

    last = client.get("/api/products", params={"page": 3, "limit": 2}).json()
    assert len(last["products"]) == 1

    beyond = client.get("/api/products", params={"page": 7, "limit": 2})
    assert beyond.status_code == 200
    assert beyond.json()["products"] == []
    assert beyond.json()["total"] == 5


def test_public_listing_hides_inactive_products(client, admin_headers, category):
    create_product(client, admin_headers, category["id"], slug="visible")
    create_product(client, admin_headers, category["id"], slug="hidden", is_active=False)

    public = client.get("/api/products").json()
    assert [p["slug"] for p in public["products"]] == ["visible"]

    admin = client.get("/api/products/admin/all", headers=admin_headers).json()
    assert admin["total"] == 2


def test_filters_combine_with_and(client, admin_headers, category):
    other = create_category(client, admin_headers, name="Pants", slug="pants")
    create_product(client, admin_headers, category["id"], slug="cheap-s", price=10, sizes=["S"])
    create_product(client, admin_headers, category["id"], slug="mid-m", price=50, sizes=["M", "L"], featured=True)
    create_product(client, admin_headers, category["id"], slug="pricey-l", price=150, sizes=["L"],
                   name="Silk Shirt", description="Luxury silk")
    create_product(client, admin_headers, other["id"], slug="pants-m", price=40, sizes=["M"])

    def slugs(**params):
        return sorted(p["slug"] for p in client.get("/api/products", params=params).json()["products"])

    assert slugs(category=category["id"]) == ["cheap-s", "mid-m", "pricey-l"]
    assert slugs(minPrice=20, maxPrice=100) == ["mid-m", "pants-m"]
    assert slugs(size="M") == ["mid-m", "pants-m"]
    assert slugs(size="S,L") == ["cheap-s", "mid-m", "pricey-l"]
    assert slugs(search="silk") == ["pricey-l"]
    assert slugs(featured="true") == ["mid-m"]
    assert slugs(category=category["id"], size="M", maxPrice=60) == ["mid-m"]


def test_sorting(client, admin_headers, category):
    create_product(client, admin_headers, category["id"], slug="b", price=30)
    create_product(client, admin_headers, category["id"], slug="a", price=10)
    create_product(client, admin_headers, category["id"], slug="c", price=20)

    def order(sort):
        return [p["slug"] for p in client.get("/api/products", params={"sort": sort}).json()["products"]]

    assert order("price-asc") == ["a", "c", "b"]
    assert order("price-desc") == ["b", "c", "a"]
    assert order("newest") == ["c", "a", "b"]


def test_get_by_slug_and_id(client, admin_headers, category):
    product = create_product(client, admin_headers, category["id"])

    by_slug = client.get("/api/products/slug/basic-tee")
    assert by_slug.status_code == 200
    assert by_slug.json()["id"] == product["id"]
    assert by_slug.json()["category"] == {"id": category["id"], "name": "Shirts", "slug": "shirts"}

    assert client.get(f"/api/products/{product['id']}").json()["slug"] == "basic-tee"
    assert client.get("/api/products/slug/missing").status_code == 404
    assert client.get("/api/products/9999").status_code == 404


def test_featured_and_related(client, admin_headers, category):
    other = create_category(client, admin_headers, name="Hats", slug="hats")
    base = create_product(client, admin_headers, category["id"], slug="base", featured=True)
    create_product(client, admin_headers, category["id"], slug="sibling")
    create_product(client, admin_headers, category["id"], slug="inactive-sibling", is_active=False)
    create_product(client, admin_headers, other["id"], slug="stranger", featured=True)

    featured = [p["slug"] for p in client.get("/api/products/featured").json()]
    assert sorted(featured) == ["base", "stranger"]

    related = [p["slug"] for p in client.get(f"/api/products/{base['id']}/related").json()]
    assert related == ["sibling"]


def test_admin_update_and_delete(client, admin_headers, category):
    product = create_product(client, admin_headers, category["id"])

    r = client.put(f"/api/products/{product['id']}", json={"price": 25.5, "stock": 3}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["price"] == 25.5
    assert r.json()["stock"] == 3
    assert r.json()["name"] == "Basic Tee"

    assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_mutations_require_admin(client, user_headers, admin_headers, category):
    data = {"name": "X", "slug": "x", "price": 1, "category_id": category["id"]}
    assert client.post("/api/products", json=data).status_code == 401
    assert client.post("/api/products", json=data, headers=user_headers).status_code == 403


def test_negative_price_or_stock_rejected(client, admin_headers, category):
    base = {"name": "X", "slug": "x", "category_id": category["id"]}
    assert client.post("/api/products", json={**base, "price": -1}, headers=admin_headers).status_code == 422
    assert client.post("/api/products", json={**base, "price": 1, "stock": -2}, headers=admin_headers).status_code == 422


def test_categories(client, admin_headers, category):
    create_category(client, admin_headers, name="Archive", slug="archive", is_active=False)
    create_category(client, admin_headers, name="Accessories", slug="accessories")

    names = [c["name"] for c in client.get("/api/categories").json()]
    assert names == ["Accessories", "Shirts"]

    assert client.get("/api/categories/shirts").json()["id"] == category["id"]

    r = client.put(f"/api/categories/{category['id']}", json={"name": "Tops"}, headers=admin_headers)
    assert r.json()["name"] == "Tops"

    create_product(client, admin_headers, category["id"])
    assert client.delete(f"/api/categories/{category['id']}", headers=admin_headers).status_code == 400


def test_search_treats_wildcards_literally(client, admin_headers, category):
    create_product(client, admin_headers, category["id"], name="Tee_2", slug="tee-underscore")
    create_product(client, admin_headers, category["id"], name="TeeX2", slug="tee-x")
    create_product(client, admin_headers, category["id"], name="100% Linen", slug="linen")

    def slugs(term):
        return [p["slug"] for p in client.get("/api/products", params={"search": term}).json()["products"]]

    assert slugs("Tee_2") == ["tee-underscore"]
    assert slugs("100%") == ["linen"]
    assert slugs("%") == ["linen"]
