import httpx
import pytest
from spoonacular_client import SpoonacularClient, SpoonacularError, parse_search_options


@pytest.mark.unit
def test_parse_search_options_keeps_known_and_valid_values():
    options = parse_search_options(
        {
            "addRecipeInformation": "true",
            "ignorePantry": "false",
            "cuisine": "italian",
            "diet": "",
            "sortDirection": "sideways",
            "maxReadyTime": "30",
            "minProtein": "abc",
            "maxCalories": "800",
            "unknownFilter": "x",
        }
    )

    assert options == {
        "addRecipeInformation": True,
        "cuisine": "italian",
        "maxReadyTime": 30,
        "maxCalories": 800,
    }


@pytest.mark.unit
@pytest.mark.parametrize(
    "message, status_code, is_quota",
    [
        ("Payment required", 402, True),
        ("Your daily points limit of 150 has been reached", 429, True),
        ("daily limit exceeded", None, True),
        ("Recipe not found", 404, False),
    ],
)
def test_quota_error_detection(message, status_code, is_quota):
    assert SpoonacularError(message, status_code).is_quota_error is is_quota


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_sends_paging_options_and_api_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"results": []})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = SpoonacularClient("key-1", http_client, "https://api.example/")
        await client.search_recipes("soup", page=2, options={"addRecipeInformation": True})

    assert seen["path"] == "/recipes/complexSearch"
    assert seen["params"] == {
        "query": "soup",
        "number": "10",
        "offset": "20",
        "addRecipeInformation": "true",
        "apiKey": "key-1",
    }


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upstream_errors_carry_status_and_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "A recipe with this id does not exist"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = SpoonacularClient("key-1", http_client, "https://api.example")
        with pytest.raises(SpoonacularError) as exc_info:
            await client.get_information(999)

    assert exc_info.value.is_not_found
    assert "does not exist" in str(exc_info.value)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timeout_maps_to_gateway_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = SpoonacularClient("key-1", http_client, "https://api.example")
        with pytest.raises(SpoonacularError) as exc_info:
            await client.get_summary(1)

    assert exc_info.value.status_code == 504
