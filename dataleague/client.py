"""HTTP client for the game backend (Nakama) API.

   Two kinds of calls are offered: named remote procedures (rpc) that carry
   a JSON encoded string payload, used for the league business operations,
   and typed platform calls (accounts, storage, leaderboards, groups,
   tournaments). Failures raise RemoteCallError and are never retried.
"""

import base64
import json
import logging
from typing import Any, Iterable, Optional, Union

import aiohttp
import pendulum

from dataleague.errors import RemoteCallError

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100

Params = list[tuple[str, str]]


def _query(**kwargs) -> Params:
    """Builds query parameters, skipping unset values and repeating the key
       of list values.
    """
    params = []
    for key, value in kwargs.items():
        if value is None or value == "":
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for val in values:
            if isinstance(val, bool):
                val = "true" if val else "false"
            params.append((key, str(val)))
    return params


def _error_message(text: str) -> str:
    try:
        body = json.loads(text)
    except ValueError:
        return text.strip() or "empty response"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or text
    return text


def _decode(text: str, operation: str, status: Optional[int] = None) -> Any:
    try:
        return json.loads(text)
    except ValueError as err:
        logger.error("%s returned malformed JSON: %s", operation, text)
        raise RemoteCallError(f"Malformed response: {err}", status,
                              operation) from err


def _newest_first(objects: list[dict]) -> list[dict]:
    epoch = pendulum.from_timestamp(0)

    def created(obj):
        value = obj.get("create_time")
        return pendulum.parse(value) if value else epoch

    return sorted(objects, key=created, reverse=True)


class NakamaClient:
    """Thin async wrapper around the Nakama HTTP gateway."""

    def __init__(self, http: aiohttp.ClientSession, base_url: str,
                 server_key: str, token: Optional[str] = None):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.server_key = server_key
        self.token = token

    def _auth_header(self, basic: bool) -> dict[str, str]:
        if basic or self.token is None:
            key = base64.b64encode(f"{self.server_key}:".encode()).decode()
            return {"Authorization": f"Basic {key}"}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str,
                       params: Optional[Params] = None,
                       body: Any = None, basic: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        headers = self._auth_header(basic)
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body)
        logger.debug("%s %s %s %s", method, path, params, data)
        try:
            async with self.http.request(method, url, params=params,
                                         data=data,
                                         headers=headers) as response:
                text = await response.text()
                status = response.status
                if response.status >= 400:
                    message = _error_message(text)
                    logger.error("%s %s failed: %s %s", method, path,
                                 response.status, message)
                    raise RemoteCallError(message, response.status,
                                          f"{method} {path}")
        except aiohttp.ClientError as err:
            logger.error("%s %s failed: %s", method, path, err)
            raise RemoteCallError(str(err) or type(err).__name__,
                                  operation=f"{method} {path}") from err
        if not text:
            return {}
        return _decode(text, f"{method} {path}", status)

    # Session

    async def authenticate_custom(self, custom_id: str,
                                  username: Optional[str] = None,
                                  account_vars: Optional[dict] = None,
                                  create: bool = True) -> dict:
        """Returns the session (token and refresh_token) of the account with
           this custom ID, creating the account if needed.
        """
        body = {"id": custom_id}
        if account_vars:
            body["vars"] = account_vars
        return await self._request(
            "POST", "/v2/account/authenticate/custom",
            params=_query(create=create, username=username),
            body=body, basic=True)

    async def authenticate_email(self, email: str, password: str,
                                 username: Optional[str] = None,
                                 create: bool = True) -> dict:
        return await self._request(
            "POST", "/v2/account/authenticate/email",
            params=_query(create=create, username=username),
            body={"email": email, "password": password}, basic=True)

    async def healthcheck(self) -> None:
        await self._request("GET", "/healthcheck")

    # Remote procedures

    async def rpc(self, rpc_id: str, payload: str) -> str:
        """Invokes the named remote procedure with a string payload and
           returns the raw response payload ("" if there is none).
        """
        logger.info("rpc %s %s", rpc_id, payload)
        result = await self._request("POST", f"/v2/rpc/{rpc_id}",
                                     body=payload)
        return result.get("payload", "")

    async def rpc_json(self, rpc_id: str, request: Any) -> Any:
        """Same as rpc(), but encodes the request and decodes the response
           as JSON. Returns None for an empty response payload.
        """
        payload = await self.rpc(rpc_id, json.dumps(request))
        if not payload:
            return None
        return _decode(payload, f"rpc {rpc_id}")

    # Accounts

    async def get_account(self) -> dict:
        return await self._request("GET", "/v2/account")

    # Storage

    async def read_storage_objects(self, collection: str, key: str,
                                   user_id: str) -> list[dict]:
        """Reads objects by their collection, key and owner, newest first."""
        result = await self._request("POST", "/v2/storage", body={
            "object_ids": [
                {"collection": collection, "key": key, "user_id": user_id},
            ],
        })
        return _newest_first(result.get("objects", []))

    async def list_storage_objects(self, collection: str, user_id: str,
                                   limit: int = MAX_LIST_LIMIT,
                                   cursor: str = "") -> list[dict]:
        """Lists a user's objects of a collection, newest first."""
        result = await self._request(
            "GET", f"/v2/storage/{collection}",
            params=_query(user_id=user_id, limit=limit, cursor=cursor))
        return _newest_first(result.get("objects", []))

    async def delete_storage_object(self, collection: str, key: str,
                                    version: str = "") -> None:
        object_id = {"collection": collection, "key": key}
        if version:
            object_id["version"] = version
        await self._request("PUT", "/v2/storage/delete",
                            body={"object_ids": [object_id]})

    # Leaderboards

    async def list_leaderboard_records_around_owner(
            self, leaderboard_id: str, owner_id: str,
            limit: int = MAX_LIST_LIMIT,
            expiry: Optional[int] = None) -> list[dict]:
        result = await self._request(
            "GET", f"/v2/leaderboard/{leaderboard_id}/owner/{owner_id}",
            params=_query(limit=limit, expiry=expiry))
        return result.get("records", [])

    # Groups

    async def create_group(self, name: str, description: str = "",
                           lang_tag: str = "", avatar_url: str = "",
                           open_group: bool = True,
                           max_count: Optional[int] = None) -> dict:
        body = {"name": name, "description": description,
                "lang_tag": lang_tag, "avatar_url": avatar_url,
                "open": open_group}
        if max_count is not None:
            body["max_count"] = max_count
        return await self._request("POST", "/v2/group", body=body)

    async def list_groups(self, name: str = "", cursor: str = "",
                          limit: int = MAX_LIST_LIMIT) -> dict:
        return await self._request(
            "GET", "/v2/group",
            params=_query(name=name, cursor=cursor, limit=limit))

    async def update_group(self, group_id: str, name: str = "",
                           description: str = "", lang_tag: str = "",
                           avatar_url: str = "") -> dict:
        body = {k: v for k, v in (("name", name),
                                  ("description", description),
                                  ("lang_tag", lang_tag),
                                  ("avatar_url", avatar_url)) if v}
        return await self._request("PUT", f"/v2/group/{group_id}", body=body)

    async def delete_group(self, group_id: str) -> dict:
        return await self._request("DELETE", f"/v2/group/{group_id}")

    async def leave_group(self, group_id: str) -> dict:
        return await self._request("POST", f"/v2/group/{group_id}/leave")

    async def _group_users(self, action: str, group_id: str,
                           user_ids: Iterable[str]) -> dict:
        return await self._request(
            "POST", f"/v2/group/{group_id}/{action}",
            params=_query(user_ids=list(user_ids)))

    async def add_group_users(self, group_id: str,
                              user_ids: Iterable[str]) -> dict:
        return await self._group_users("add", group_id, user_ids)

    async def ban_group_users(self, group_id: str,
                              user_ids: Iterable[str]) -> dict:
        return await self._group_users("ban", group_id, user_ids)

    async def kick_group_users(self, group_id: str,
                               user_ids: Iterable[str]) -> dict:
        return await self._group_users("kick", group_id, user_ids)

    async def promote_group_users(self, group_id: str,
                                  user_ids: Iterable[str]) -> dict:
        return await self._group_users("promote", group_id, user_ids)

    async def list_group_users(self, group_id: str,
                               limit: int = MAX_LIST_LIMIT,
                               state: Optional[int] = None,
                               cursor: str = "") -> dict:
        return await self._request(
            "GET", f"/v2/group/{group_id}/user",
            params=_query(limit=limit, state=state, cursor=cursor))

    async def list_user_groups(self, user_id: str,
                               limit: int = MAX_LIST_LIMIT,
                               state: Optional[int] = None,
                               cursor: str = "") -> dict:
        return await self._request(
            "GET", f"/v2/user/{user_id}/group",
            params=_query(limit=limit, state=state, cursor=cursor))

    # Tournaments

    async def list_tournaments(self, category_start: int = 0,
                               category_end: int = 127,
                               start_time: Optional[int] = None,
                               end_time: Optional[int] = None,
                               limit: int = MAX_LIST_LIMIT,
                               cursor: str = "") -> dict:
        return await self._request(
            "GET", "/v2/tournament",
            params=_query(category_start=category_start,
                          category_end=category_end, start_time=start_time,
                          end_time=end_time, limit=limit, cursor=cursor))

    async def write_tournament_record(self, tournament_id: str, score: int,
                                      subscore: int = 0,
                                      metadata: str = "") -> dict:
        body: dict[str, Union[str, int]] = {"score": str(score),
                                            "subscore": str(subscore)}
        if metadata:
            body["metadata"] = metadata
        return await self._request("PUT", f"/v2/tournament/{tournament_id}",
                                   body=body)

    async def list_tournament_records(self, tournament_id: str,
                                      owner_ids: Iterable[str] = (),
                                      limit: int = MAX_LIST_LIMIT,
                                      cursor: str = "",
                                      expiry: Optional[int] = None) -> dict:
        return await self._request(
            "GET", f"/v2/tournament/{tournament_id}",
            params=_query(owner_ids=list(owner_ids), limit=limit,
                          cursor=cursor, expiry=expiry))

    async def list_tournament_records_around_owner(
            self, tournament_id: str, owner_id: str,
            limit: int = MAX_LIST_LIMIT,
            expiry: Optional[int] = None) -> dict:
        return await self._request(
            "GET", f"/v2/tournament/{tournament_id}/owner/{owner_id}",
            params=_query(limit=limit, expiry=expiry))
