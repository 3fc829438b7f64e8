import json

import httpx
import pytest
from conftest import chat_response, gemini_response

ANALYSIS_JSON = {
    "healthScore": {"score": 72, "explanation": "Balanced protein and carbohydrates"},
    "nutritionAnalysis": {"summary": "Hearty", "strengths": ["Protein"], "concerns": []},
    "allergens": [{"allergen": "dairy", "severity": "high", "sources": ["1 cup whole milk"]}],
    "ingredientSubstitutions": [],
    "cookingDifficulty": {"level": "intermediate", "explanation": "Two stages", "tips": []},
    "timeValidation": {"estimatedTime": 50, "discrepancy": "Takes a little longer"},
}


@pytest.mark.api
@pytest.mark.asyncio
async def test_recommendations_without_providers_use_fallback(client, use_providers):
    use_providers(configured=False)

    response = await client.post("/api/ai/recommendations", json={"query": "quick vegan dinner"})

    assert response.status_code == 200
    assert response.json() == {"searchTerm": "quick vegan dinner", "number": 10}
    assert response.headers["X-AI-Source"] == "fallback"


@pytest.mark.api
@pytest.mark.asyncio
async def test_recommendations_from_first_provider(client, use_providers):
    scripted = use_providers(
        {
            "openrouter-premium": chat_response(
                'Sure! {"searchTerm": "tofu stir fry", "diet": "vegan", "number": 5}'
            )
        }
    )

    response = await client.post(
        "/api/ai/recommendations", json={"query": "quick vegan dinner", "maxReadyTime": 20}
    )

    assert response.status_code == 200
    assert response.json() == {"searchTerm": "tofu stir fry", "diet": "vegan", "number": 5}
    assert response.headers["X-AI-Source"] == "model"
    assert scripted.calls == ["openrouter-premium"]
    sent = json.loads(scripted.requests[0].content)
    assert sent["max_tokens"] == 200
    assert "Maximum ready time: 20" in sent["messages"][1]["content"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_search_translation_walks_chain_in_order(client, use_providers):
    scripted = use_providers(
        {
            "openrouter-economy": chat_response("I cannot help with that."),
            "groq": chat_response('{"diet": "vegan"}'),
            "gemini": gemini_response('```json\n{"searchTerm": "lentil curry"}\n```'),
        }
    )

    response = await client.get("/api/ai/search", params={"query": "something warm and vegan"})

    assert response.status_code == 200
    assert response.json() == {"searchTerm": "lentil curry"}
    assert response.headers["X-AI-Source"] == "model"
    assert scripted.calls == ["openrouter-premium", "openrouter-economy", "groq", "gemini"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_search_translation_requires_query(client, use_providers):
    scripted = use_providers()

    response = await client.get("/api/ai/search", params={"query": "   "})

    assert response.status_code == 400
    assert response.json()["error"] == "Query is required"
    assert scripted.calls == []


@pytest.mark.api
@pytest.mark.asyncio
async def test_search_translation_falls_back_to_raw_query(client, use_providers):
    use_providers({"groq": httpx.ConnectError("refused")})

    response = await client.get("/api/ai/search", params={"query": "pasta bake"})

    assert response.status_code == 200
    assert response.json() == {"searchTerm": "pasta bake"}
    assert response.headers["X-AI-Source"] == "fallback"


@pytest.mark.api
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path, body",
    [
        ("GET", "/api/ai/search?query=soup", None),
        ("GET", "/api/recipes/{id}/analyze", None),
        ("POST", "/api/recipes/{id}/modify", {"modificationType": "simplify"}),
    ],
)
async def test_unconfigured_ai_is_a_server_error(
    client, use_providers, recipe_api, make_recipe, method, path, body
):
    recipe = recipe_api.add(make_recipe())
    use_providers(configured=False)

    response = await client.request(method, path.format(id=recipe["id"]), json=body)

    assert response.status_code == 500
    assert response.json()["error"] == "AI service is not configured"
    assert recipe_api.calls == []


@pytest.mark.api
@pytest.mark.asyncio
async def test_analysis_from_provider(client, use_providers, recipe_api, make_recipe):
    recipe = recipe_api.add(make_recipe())
    scripted = use_providers({"openrouter-premium": chat_response(json.dumps(ANALYSIS_JSON))})

    response = await client.get(f"/api/recipes/{recipe['id']}/analyze")

    assert response.status_code == 200
    assert response.json() == ANALYSIS_JSON
    assert response.headers["X-AI-Source"] == "model"
    assert scripted.calls == ["openrouter-premium"]
    assert json.loads(scripted.requests[0].content)["max_tokens"] == 1500
    assert recipe_api.calls == [f"/recipes/{recipe['id']}/information"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_analysis_skips_output_with_wrong_shape(
    client, use_providers, recipe_api, make_recipe
):
    recipe = recipe_api.add(make_recipe())
    scripted = use_providers(
        {
            "openrouter-premium": chat_response('{"healthScore": "very healthy"}'),
            "openrouter-economy": chat_response(json.dumps(ANALYSIS_JSON)),
        }
    )

    response = await client.get(f"/api/recipes/{recipe['id']}/analyze")

    assert response.status_code == 200
    assert response.json()["healthScore"]["score"] == 72
    assert scripted.calls == ["openrouter-premium", "openrouter-economy"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_analysis_fallback_when_all_providers_fail(
    client, use_providers, recipe_api, make_recipe
):
    recipe = recipe_api.add(make_recipe(readyInMinutes=75, healthScore=35))
    scripted = use_providers()

    response = await client.get(f"/api/recipes/{recipe['id']}/analyze")

    assert response.status_code == 200
    assert response.headers["X-AI-Source"] == "fallback"
    assert scripted.calls == ["openrouter-premium", "openrouter-economy", "groq", "gemini"]
    body = response.json()
    assert body["healthScore"]["score"] == 35
    assert body["cookingDifficulty"]["level"] == "advanced"
    assert body["timeValidation"] == {"estimatedTime": 75, "discrepancy": None}
    assert body["allergens"] == [
        {"allergen": "gluten", "severity": "medium", "sources": ["2 cups all-purpose flour"]},
        {
            "allergen": "dairy",
            "severity": "medium",
            "sources": ["1 cup whole milk", "3 tbsp butter"],
        },
    ]
    assert "Low overall health score" in body["nutritionAnalysis"]["concerns"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_analysis_fallback_is_deterministic(client, use_providers, recipe_api, make_recipe):
    recipe = recipe_api.add(make_recipe())
    use_providers()

    first = await client.get(f"/api/recipes/{recipe['id']}/analyze")
    second = await client.get(f"/api/recipes/{recipe['id']}/analyze")

    assert first.json() == second.json()


@pytest.mark.api
@pytest.mark.asyncio
async def test_analysis_of_unknown_recipe_is_not_found(client, use_providers):
    scripted = use_providers()

    response = await client.get("/api/recipes/424242/analyze")

    assert response.status_code == 404
    assert response.json()["error"] == "Recipe not found"
    assert scripted.calls == []


@pytest.mark.api
@pytest.mark.asyncio
async def test_analysis_rejects_non_numeric_id(client, use_providers):
    use_providers()

    response = await client.get("/api/recipes/abc/analyze")

    assert response.status_code == 400


@pytest.mark.api
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, message",
    [
        ({}, "modificationType must be 'dietary' or 'simplify'"),
        ({"modificationType": "fancy"}, "modificationType must be 'dietary' or 'simplify'"),
        ({"modificationType": "dietary"}, "dietType is required"),
    ],
)
async def test_modify_validation(client, use_providers, recipe_api, make_recipe, body, message):
    recipe = recipe_api.add(make_recipe())
    scripted = use_providers()

    response = await client.post(f"/api/recipes/{recipe['id']}/modify", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == message
    assert scripted.calls == []
    assert recipe_api.calls == []


@pytest.mark.api
@pytest.mark.asyncio
async def test_vegan_modification_fallback(client, use_providers, recipe_api, make_recipe):
    recipe = recipe_api.add(make_recipe())
    use_providers()

    response = await client.post(
        f"/api/recipes/{recipe['id']}/modify",
        json={"modificationType": "dietary", "dietType": "vegan"},
    )

    assert response.status_code == 200
    assert response.headers["X-AI-Source"] == "fallback"
    body = response.json()
    assert [item["original"] for item in body["modifiedIngredients"]] == [
        "1 cup whole milk",
        "3 tbsp butter",
        "2 chicken breasts",
    ]
    assert body["modifiedIngredients"][0]["substitute"] == "unsweetened oat or soy milk"
    assert body["modifiedInstructions"] == "Mix the flour and milk.\nCook the chicken in butter."


@pytest.mark.api
@pytest.mark.asyncio
async def test_dietary_modification_from_provider(client, use_providers, recipe_api, make_recipe):
    recipe = recipe_api.add(make_recipe())
    scripted = use_providers(
        {
            "openrouter-premium": chat_response(
                json.dumps(
                    {
                        "explanation": "Swapped flour",
                        "modifiedIngredients": [
                            {"original": "2 cups all-purpose flour", "substitute": "almond flour"}
                        ],
                        "modifiedInstructions": ["Mix", "Bake"],
                    }
                )
            )
        }
    )

    response = await client.post(
        f"/api/recipes/{recipe['id']}/modify",
        json={"modificationType": "dietary", "dietType": "keto"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "explanation": "Swapped flour",
        "modifiedIngredients": [
            {"original": "2 cups all-purpose flour", "substitute": "almond flour", "reason": ""}
        ],
        "modifiedInstructions": "Mix\nBake",
    }
    sent = json.loads(scripted.requests[0].content)
    assert sent["max_tokens"] == 1000
    assert "so it is keto" in sent["messages"][1]["content"]


@pytest.mark.api
@pytest.mark.asyncio
async def test_simplify_fallback(client, use_providers, recipe_api, make_recipe):
    recipe = recipe_api.add(make_recipe())
    use_providers()

    response = await client.post(
        f"/api/recipes/{recipe['id']}/modify", json={"modificationType": "simplify"}
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["simplifiedIngredients"]) == 4
    assert body["simplifiedIngredients"][0]["reason"] == "No change needed"
    assert body["simplifiedInstructions"].startswith("1. Mix the flour and milk.")
    assert len(body["tips"]) == 3


@pytest.mark.api
@pytest.mark.asyncio
async def test_quota_exhaustion_is_payment_required(client, use_providers, recipe_api):
    recipe_api.quota_exhausted = True
    use_providers()

    response = await client.get("/api/recipes/1/analyze")

    assert response.status_code == 402
    body = response.json()
    assert body["error"] == "Recipe API daily limit reached"
    assert body["path"] == "/api/recipes/1/analyze"
