"""Generic retrieval engine shared by every CCS resource type.

:class:`ApiEngine` turns a :class:`~ccsclient.interactor.models.Resource`
subclass into HTTP calls: it builds the request path (below
``contests/{id}/`` for contest scoped resources), performs the GET or POST via
``httpx``, classifies the status code and decodes the JSON body into typed
values.  It never wraps errors with call-site context; that is the job of
:class:`~ccsclient.interactor.client.CCSClient`.

Bodies are read eagerly by ``httpx`` (no streaming), so the connection is
returned to the pool before any method here returns or raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from .errors import (
    AuthenticationError,
    CCSClientError,
    DecodeError,
    NotFoundError,
    ServerError,
    StructuralError,
    TransportError,
)
from .models import ApiErrorPayload, Resource, Submittable

logger = logging.getLogger(__name__)

ResourceT = TypeVar('ResourceT', bound=Resource)


def _json_type(value: Any) -> str:
    if value is None:
        return 'null'
    if isinstance(value, Mapping):
        return 'object'
    if isinstance(value, list):
        return f'array of {len(value)}'
    return type(value).__name__


def _error_detail(response: httpx.Response) -> str:
    try:
        error = ApiErrorPayload.model_validate_json(response.content)
    except ValidationError:
        return response.text
    return f'{error.message} (error code {error.code})'


def response_to_error(response: httpx.Response) -> CCSClientError | None:
    """Classify ``response``; ``None`` means the status allows decoding the body."""

    if response.is_success:
        return None

    status = response.status_code
    detail = _error_detail(response)
    if status == httpx.codes.UNAUTHORIZED:
        return AuthenticationError(f'request not authorized: {detail}', status_code=status, body=response.text)
    if status == httpx.codes.NOT_FOUND:
        return NotFoundError(f'object not found: {detail}', status_code=status, body=response.text)
    return ServerError(f'invalid status code received: {status}: {detail}', status_code=status, body=response.text)


class ApiEngine:
    """Stateless GET/POST plumbing bound to one HTTP client and an optional contest."""

    def __init__(self, http_client: httpx.AsyncClient, contest_id: str = '') -> None:
        self._client = http_client
        self._contest_id = contest_id

    @property
    def contest_id(self) -> str:
        return self._contest_id

    def with_contest(self, contest_id: str) -> ApiEngine:
        """Return an engine for ``contest_id`` sharing this engine's connection pool."""

        return ApiEngine(self._client, contest_id)

    # -- Paths ------------------------------------------------------------

    def scoped_path(self, path: str) -> str:
        if not self._contest_id:
            msg = f'{path!r} lives below a contest; bind the client to a contest first.'
            raise ValueError(msg)
        return f'contests/{self._contest_id}/{path}'

    def resource_path(self, model: type[Resource]) -> str:
        return self.scoped_path(model.path) if model.in_contest else model.path

    # -- Public API -------------------------------------------------------

    async def list_objects(self, model: type[ResourceT]) -> list[ResourceT]:
        return await self.retrieve_many(model, self.resource_path(model))

    async def get_object(self, model: type[ResourceT], object_id: str = '') -> ResourceT:
        path = self.resource_path(model)
        if object_id:
            path = f'{path}/{object_id}'
        return await self.retrieve_one(model, path)

    async def post_object(self, model: type[ResourceT], value: Submittable) -> ResourceT:
        path = self.resource_path(model)
        body = value.encode()
        response = await self._request('POST', path, content=body, headers={'Content-Type': 'application/json'})
        return self._decode_single(model, self._parse_json(response, path), path)

    async def retrieve_one(self, model: type[ResourceT], path: str) -> ResourceT:
        response = await self._request('GET', path)
        return self._decode_single(model, self._parse_json(response, path), path)

    async def retrieve_many(self, model: type[ResourceT], path: str) -> list[ResourceT]:
        """Decode every element of the array at ``path``.

        When an element fails to decode, the raised :class:`DecodeError` names
        its index and carries the elements decoded before it in ``partial``.
        """

        response = await self._request('GET', path)
        payload = self._parse_json(response, path)
        if not isinstance(payload, list):
            raise StructuralError(f'expected a JSON array from {path}, got {_json_type(payload)}')

        decoded: list[ResourceT] = []
        for index, element in enumerate(payload):
            if not isinstance(element, Mapping):
                msg = f'element {index} of {path}: expected a JSON object, got {_json_type(element)}'
                raise DecodeError(msg, partial=decoded)
            try:
                decoded.append(model.decode(element))
            except DecodeError as exc:
                logger.warning('Decoding element %d of %s failed after %d successes', index, path, len(decoded))
                raise DecodeError(f'element {index} of {path}: {exc.message}', partial=decoded) from exc
        return decoded

    # -- Internal helpers -------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        content: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        logger.debug('%s %s', method, path)
        try:
            response = await self._client.request(method, path, content=content, headers=headers)
        except httpx.HTTPError as exc:  # Network / TLS / protocol problems
            msg = f'error communicating with the CCS during {method} {path}: {exc}'
            raise TransportError(msg) from exc

        error = response_to_error(response)
        if error is not None:
            logger.warning('CCS answered %s to %s %s', response.status_code, method, path)
            raise error
        return response

    @staticmethod
    def _parse_json(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f'response from {path} did not contain valid JSON: {exc}', body=response.text) from exc

    @staticmethod
    def _decode_single(model: type[ResourceT], payload: Any, path: str) -> ResourceT:
        if isinstance(payload, list):
            if len(payload) != 1:
                raise StructuralError(f'expected exactly 1 object, got {len(payload)}')
            payload = payload[0]
        if not isinstance(payload, Mapping):
            raise StructuralError(f'expected a JSON object from {path}, got {_json_type(payload)}')
        return model.decode(payload)


__all__ = ['ApiEngine', 'ResourceT', 'response_to_error']
