import json

import aiohttp
import pytest

from dataleague.client import NakamaClient, _newest_first, _query
from dataleague.errors import RemoteCallError


class FakeResponse:
    def __init__(self, status, text):
        self.status = status
        self._text = text

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeHttp:
    """Records the requests made through an aiohttp.ClientSession."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def make_client(status=200, text="{}", token="session", error=None):
    http = FakeHttp(FakeResponse(status, text), error)
    return NakamaClient(http, "http://nakama:7350/", "key", token), http


def test_query():
    assert _query(a=1, b=None, c="", d=True, e=["x", "y"]) == [
        ("a", "1"), ("d", "true"), ("e", "x"), ("e", "y")]


def test_newest_first():
    objects = [{"key": "old", "create_time": "2022-01-01T00:00:00Z"},
               {"key": "none"},
               {"key": "new", "create_time": "2022-06-01T00:00:00Z"}]
    assert [x["key"] for x in _newest_first(objects)] == [
        "new", "old", "none"]


@pytest.mark.asyncio
async def test_rpc_sends_a_json_string():
    client, http = make_client(text=json.dumps({"payload": '{"ok": true}'}))

    assert await client.rpc_json("MatchReady", {"MatchID": "m1"}) == {
        "ok": True}

    method, url, kwargs = http.requests[0]
    assert method == "POST"
    assert url == "http://nakama:7350/v2/rpc/MatchReady"
    assert json.loads(json.loads(kwargs["data"])) == {"MatchID": "m1"}
    assert kwargs["headers"]["Authorization"] == "Bearer session"


@pytest.mark.asyncio
async def test_rpc_json_without_payload():
    client, _ = make_client(text="{}")
    assert await client.rpc_json("MatchStateGet", {"ID": "m1"}) is None


@pytest.mark.asyncio
async def test_authentication_uses_the_server_key():
    client, http = make_client(text='{"token": "t"}', token=None)

    await client.authenticate_custom("42", username="bob#7")

    _, url, kwargs = http.requests[0]
    assert url.endswith("/v2/account/authenticate/custom")
    assert kwargs["headers"]["Authorization"] == "Basic a2V5Og=="
    assert ("username", "bob#7") in kwargs["params"]


@pytest.mark.asyncio
async def test_http_error():
    client, _ = make_client(status=404, text='{"message": "not found"}')

    with pytest.raises(RemoteCallError) as err:
        await client.get_account()

    assert err.value.status == 404
    assert err.value.operation == "GET /v2/account"
    assert str(err.value) == "not found (HTTP 404)"


@pytest.mark.asyncio
async def test_connection_error():
    client, _ = make_client(error=aiohttp.ClientConnectionError("refused"))

    with pytest.raises(RemoteCallError, match="refused") as err:
        await client.healthcheck()

    assert err.value.status is None


@pytest.mark.asyncio
async def test_group_users_repeat_the_user_ids():
    client, http = make_client()

    await client.ban_group_users("g1", ["a", "b"])

    method, url, kwargs = http.requests[0]
    assert (method, url) == ("POST", "http://nakama:7350/v2/group/g1/ban")
    assert kwargs["params"] == [("user_ids", "a"), ("user_ids", "b")]


@pytest.mark.asyncio
async def test_read_storage_objects_newest_first():
    client, _ = make_client(text=json.dumps({"objects": [
        {"key": "a", "create_time": "2022-01-01T00:00:00Z"},
        {"key": "b", "create_time": "2022-02-01T00:00:00Z"},
    ]}))
    objects = await client.read_storage_objects("ticket_data", "", "u1")
    assert [x["key"] for x in objects] == ["b", "a"]


@pytest.mark.asyncio
async def test_malformed_response_body():
    client, _ = make_client(text="<html>Bad gateway</html>")
    with pytest.raises(RemoteCallError, match="Malformed response") as err:
        await client.get_account()
    assert err.value.status == 200
    assert err.value.operation == "GET /v2/account"


@pytest.mark.asyncio
async def test_malformed_rpc_payload():
    client, _ = make_client(text=json.dumps({"payload": "plain text"}))
    with pytest.raises(RemoteCallError, match="Malformed response") as err:
        await client.rpc_json("MatchStateGet", {"MatchID": "m1"})
    assert err.value.operation == "rpc MatchStateGet"
