from typing import Optional

import pytest
from main import app

from shared.redis_client import get_search_cache


class InMemoryCache:
    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        self.values[key] = value
        self.ttls[key] = ttl
        return True


@pytest.mark.api
@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "recipes"}


@pytest.mark.api
@pytest.mark.asyncio
async def test_api_index_lists_routes(client):
    response = await client.get("/api")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "/api/recipes/search" in response.text
    assert "X-Response-Time" in response.headers


@pytest.mark.api
@pytest.mark.asyncio
async def test_search_returns_recipe_api_results(client, recipe_api):
    recipe_api.search_results = {
        "results": [{"id": 1, "title": "Lentil Soup"}],
        "offset": 10,
        "number": 10,
        "totalResults": 11,
    }

    response = await client.get(
        "/api/recipes/search", params={"searchTerm": "soup", "page": 1, "diet": "vegan"}
    )

    assert response.status_code == 200
    assert response.json()["results"] == [{"id": 1, "title": "Lentil Soup"}]
    assert recipe_api.calls == ["/recipes/complexSearch"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_search_is_served_from_cache_on_repeat(client, recipe_api):
    cache = InMemoryCache()
    app.dependency_overrides[get_search_cache] = lambda: cache
    recipe_api.search_results = {"results": [{"id": 7, "title": "Pho"}]}

    first = await client.get("/api/recipes/search", params={"searchTerm": "pho", "cuisine": "vietnamese"})
    second = await client.get("/api/recipes/search", params={"cuisine": "vietnamese", "searchTerm": "pho"})

    assert first.json() == second.json() == {"results": [{"id": 7, "title": "Pho"}]}
    assert recipe_api.calls == ["/recipes/complexSearch"]
    assert list(cache.ttls.values()) == [3600]


@pytest.mark.api
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, message",
    [
        ({"query": "a"}, "Query must be at least 2 characters"),
        ({"query": "chicken", "number": "30"}, "Number must be between 1 and 25"),
        ({"query": "chicken", "number": "many"}, "Number must be between 1 and 25"),
    ],
)
async def test_autocomplete_validation(client, params, message):
    response = await client.get("/api/recipes/autocomplete", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": message}


@pytest.mark.api
@pytest.mark.asyncio
async def test_autocomplete(client):
    response = await client.get("/api/recipes/autocomplete", params={"query": "chick"})

    assert response.status_code == 200
    assert response.json() == [{"id": 1, "title": "chicken soup"}]


@pytest.mark.api
@pytest.mark.asyncio
async def test_recipe_information_not_found(client):
    response = await client.get("/api/recipes/31337/information")

    assert response.status_code == 404
    assert response.json()["error"] == "Recipe not found"


@pytest.mark.api
@pytest.mark.asyncio
async def test_scale_recipe(client, recipe_api, make_recipe):
    recipe = recipe_api.add(make_recipe(servings=4))

    response = await client.get(f"/api/recipes/{recipe['id']}/scale", params={"servings": 8})

    assert response.status_code == 200
    body = response.json()
    assert body["recipeId"] == recipe["id"]
    assert body["originalServings"] == 4
    assert body["targetServings"] == 8
    assert body["ingredients"][0]["scaledAmount"] == 4
    assert body["ingredients"][0]["scaled"] == "4.00 cups all-purpose flour"


@pytest.mark.api
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, message",
    [
        ({"servings": 0}, "Servings must be a positive number"),
        ({"servings": 2, "unitSystem": "imperial"}, "unitSystem must be 'metric' or 'us'"),
    ],
)
async def test_scale_validation(client, recipe_api, params, message):
    response = await client.get("/api/recipes/5/scale", params=params)

    assert response.status_code == 400
    assert response.json()["error"] == message
    assert recipe_api.calls == []


@pytest.mark.api
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, params, message",
    [
        ("/api/food/wine/dishes", {}, "Wine type is required"),
        ("/api/food/wine/pairing", {}, "Food is required"),
        ("/api/food/wine/pairing", {"food": "x" * 100}, "Food must be less than 100 characters"),
        ("/api/food/wine/pairing", {"food": "steak", "maxPrice": "-1"}, "maxPrice must be a non-negative number"),
        ("/api/recipes/5/similar", {"number": "0"}, "Number must be between 1 and 100"),
    ],
)
async def test_recipe_api_proxies_validate_input(client, recipe_api, path, params, message):
    response = await client.get(path, params=params)

    assert response.status_code == 400
    assert response.json()["error"] == message
    assert recipe_api.calls == []


@pytest.mark.api
@pytest.mark.asyncio
async def test_favourites_require_authentication(client):
    response = await client.get("/api/recipes/favourite")

    assert response.status_code in (401, 403)


@pytest.mark.api
@pytest.mark.asyncio
async def test_favourites_with_invalid_token(client):
    response = await client.get(
        "/api/recipes/favourite", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}


@pytest.mark.api
@pytest.mark.asyncio
async def test_empty_favourites(client, auth_headers, recipe_api):
    response = await client.get("/api/recipes/favourite", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"results": []}
    assert recipe_api.calls == []


@pytest.mark.api
@pytest.mark.asyncio
async def test_favourites_with_details(client, auth_headers, mock_db, recipe_api, make_recipe):
    first = recipe_api.add(make_recipe(id=11))
    second = recipe_api.add(make_recipe(id=12))
    mock_db.fetch_all.return_value = [{"recipe_id": 11}, {"recipe_id": 12}]

    response = await client.get("/api/recipes/favourite", headers=auth_headers)

    assert response.status_code == 200
    assert [r["title"] for r in response.json()["results"]] == [first["title"], second["title"]]


@pytest.mark.api
@pytest.mark.asyncio
async def test_favourites_degrade_to_placeholders_on_quota(
    client, auth_headers, mock_db, recipe_api
):
    recipe_api.quota_exhausted = True
    mock_db.fetch_all.return_value = [{"recipe_id": 11}]

    response = await client.get("/api/recipes/favourite", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["results"] == [
        {
            "id": 11,
            "title": "Recipe #11 (Details unavailable - API limit reached)",
            "image": None,
            "_apiUnavailable": True,
        }
    ]
    assert "API daily limit" in body["_message"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_add_favourite(client, auth_headers, mock_db, user_id):
    mock_db.fetch_one.side_effect = [None, {"id": "fav-1", "recipe_id": 42, "user_id": user_id}]

    response = await client.post(
        "/api/recipes/favourite", json={"recipeId": 42}, headers=auth_headers
    )

    assert response.status_code == 201
    assert response.json() == {"id": "fav-1", "recipeId": 42, "userId": user_id}
    insert_args = mock_db.fetch_one.call_args_list[1].args
    assert insert_args[1:] == (42, user_id)


@pytest.mark.api
@pytest.mark.asyncio
async def test_add_duplicate_favourite(client, auth_headers, mock_db):
    mock_db.fetch_one.return_value = {"id": "fav-1"}

    response = await client.post(
        "/api/recipes/favourite", json={"recipeId": 42}, headers=auth_headers
    )

    assert response.status_code == 409
    assert response.json() == {"error": "Recipe is already in favorites"}


@pytest.mark.api
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, message",
    [({}, "Recipe ID is required"), ({"recipeId": -3}, "Invalid recipe ID format")],
)
async def test_add_favourite_validation(client, auth_headers, body, message):
    response = await client.post("/api/recipes/favourite", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": message}


@pytest.mark.api
@pytest.mark.asyncio
async def test_remove_favourite(client, auth_headers, mock_db, user_id):
    response = await client.request(
        "DELETE", "/api/recipes/favourite", json={"recipeId": 42}, headers=auth_headers
    )

    assert response.status_code == 204
    assert mock_db.execute.call_args.args[1:] == (user_id, 42)
