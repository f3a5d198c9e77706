"""
REST Storage for QuizFlow.

Talks to a PostgREST-style relational service (the tables `categories`,
`flow_steps`, `flow_options` and `flow_conditions`), using equality filters,
single-column ordering, fetch-all and inserts only.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar
import logging

import httpx
from pydantic import BaseModel

from quizflow.engine.models import Category, Condition, Option, Step
from quizflow.exceptions import ConflictError, NotFoundError, TransportError, ValidationError
from quizflow.storage.base import FlowStore


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

CATEGORIES = "categories"
STEPS = "flow_steps"
OPTIONS = "flow_options"
CONDITIONS = "flow_conditions"

# Postgres error codes reported in the response body
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class RestFlowStore(FlowStore):
    """
    Flow store backed by a remote relational REST service.

    Usage:
        store = RestFlowStore("https://example.supabase.co/rest/v1", api_key="...")
        steps = await store.list_steps(category_id)
        await store.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ============================================================
    # Low-level helpers
    # ============================================================

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        try:
            response = await self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Backing store unreachable: {e}") from e

        if response.status_code >= 400:
            self._raise_for_status(table, response)

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Malformed response from '{table}'", detail=str(e)) from e

    def _raise_for_status(self, table: str, response: httpx.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = body.get("code") if isinstance(body, dict) else None
        message = body.get("message", response.text) if isinstance(body, dict) else response.text

        if response.status_code == 409 or code == UNIQUE_VIOLATION:
            if code == FOREIGN_KEY_VIOLATION:
                raise NotFoundError(f"Referenced row missing for '{table}'", detail=message)
            raise ConflictError(f"Duplicate row in '{table}'", detail=message)

        logger.warning(f"Store request on '{table}' failed with {response.status_code}: {message}")
        raise TransportError(
            f"Backing store returned {response.status_code} for '{table}'",
            detail=message,
        )

    async def _select(
        self,
        table: str,
        model: Type[ModelT],
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
    ) -> List[ModelT]:
        params = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.asc"
        rows = await self._request("GET", table, params=params)
        return [model.model_validate(row) for row in rows]

    async def _insert(self, table: str, model: Type[ModelT], row: Dict[str, Any]) -> ModelT:
        rows = await self._request(
            "POST",
            table,
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise TransportError(f"Insert into '{table}' returned no row")
        return model.model_validate(rows[0])

    async def _get_one(self, table: str, model: Type[ModelT], column: str, value: str) -> ModelT:
        rows = await self._select(table, model, filters={column: value})
        if not rows:
            raise NotFoundError(f"{model.__name__} '{value}' not found")
        return rows[0]

    # ============================================================
    # Reads
    # ============================================================

    async def list_categories(self) -> List[Category]:
        return await self._select(CATEGORIES, Category)

    async def get_category(self, category_id: str) -> Category:
        return await self._get_one(CATEGORIES, Category, "id", category_id)

    async def get_category_by_slug(self, slug: str) -> Category:
        return await self._get_one(CATEGORIES, Category, "slug", slug)

    async def list_steps(self, category_id: str) -> List[Step]:
        steps = await self._select(STEPS, Step, filters={"category_id": category_id}, order="order_index")
        # The service only orders by one column; a stable re-sort keeps ties in response order
        return sorted(steps, key=lambda s: s.order_index)

    async def list_options(self, step_id: str) -> List[Option]:
        return await self._select(OPTIONS, Option, filters={"step_id": step_id})

    async def list_conditions(self) -> List[Condition]:
        return await self._select(CONDITIONS, Condition)

    # ============================================================
    # Inserts
    # ============================================================

    async def create_category(self, name: str, slug: str) -> Category:
        return await self._insert(CATEGORIES, Category, {"name": name, "slug": slug})

    async def create_step(
        self,
        category_id: str,
        title: str,
        description: str = "",
        order_index: Optional[int] = None,
        parent_option_id: Optional[str] = None,
        is_conditional: bool = False,
    ) -> Step:
        existing = await self.list_steps(category_id)
        taken = {s.order_index for s in existing}
        if order_index is None:
            order_index = max(taken) + 1 if taken else 0
        elif order_index in taken:
            raise ConflictError(
                f"order_index {order_index} is already used in category '{category_id}'"
            )

        return await self._insert(STEPS, Step, {
            "category_id": category_id,
            "title": title,
            "description": description,
            "order_index": order_index,
            "parent_option_id": parent_option_id,
            "is_conditional": is_conditional,
        })

    async def create_option(self, step_id: str, title: str, description: str = "") -> Option:
        return await self._insert(OPTIONS, Option, {
            "step_id": step_id,
            "title": title,
            "description": description,
        })

    async def create_condition(self, option_id: str, next_step_id: str) -> Condition:
        option = await self._get_one(OPTIONS, Option, "id", option_id)
        source = await self._get_one(STEPS, Step, "id", option.step_id)
        target = await self._get_one(STEPS, Step, "id", next_step_id)
        if source.category_id != target.category_id:
            raise ValidationError(
                "Condition crosses categories",
                detail=f"option '{option_id}' and step '{next_step_id}' "
                       f"belong to different categories",
            )

        return await self._insert(CONDITIONS, Condition, {
            "option_id": option_id,
            "next_step_id": next_step_id,
        })
