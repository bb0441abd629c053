# clipit/identifier/sources/http.py
"""Shared GET-and-validate helper for the JSON collaborators."""

from __future__ import annotations

from typing import Any, Dict, Type, TypeVar

import httpx
from pydantic import BaseModel

from clipit.identifier.errors import UpstreamError

PayloadT = TypeVar("PayloadT", bound=BaseModel)


async def get_json(
    http: httpx.AsyncClient,
    url: str,
    params: Dict[str, Any],
    model: Type[PayloadT],
) -> PayloadT:
    """
    Single-attempt GET that parses the body into ``model``.

    Any transport error, non-2xx status or payload that does not fit the
    schema is raised as UpstreamError.
    """
    try:
        response = await http.get(url, params=params)
    except httpx.HTTPError as exc:
        raise UpstreamError(f"{url}: {exc.__class__.__name__}: {exc}") from exc

    if not response.is_success:
        raise UpstreamError(
            f"{url} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    try:
        return model.model_validate(response.json())
    except ValueError as exc:  # JSONDecodeError and pydantic ValidationError
        raise UpstreamError(f"{url} returned an unexpected payload: {exc}") from exc
