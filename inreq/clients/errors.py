"""
The errors of K8s API, as seen by the rest of the client.

The HTTP library's own exceptions are not exposed above this layer for
the API-level failures: they are converted into `APIError` and its subclasses,
which carry the details from K8s's ``Status`` object (reason, message, etc.),
with the original exception chained as the cause.

The network-level failures (connection refused, TLS, timeouts) are a different
domain and are escalated from ``aiohttp`` as they are.

Only the statuses with a special meaning for the client get their own classes:
401 for switching the credentials, 404 for the requests vanished while polled,
403 & 409 for clearer messages on submission.
"""
import collections.abc
import json
from collections.abc import Collection
from typing import Literal

import aiohttp
from typing_extensions import TypedDict


class RawStatusCause(TypedDict):
    field: str
    reason: str
    message: str


class RawStatusDetails(TypedDict):
    name: str
    uid: str
    retryAfterSeconds: int
    kind: str
    group: str
    causes: Collection[RawStatusCause]


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.29/#status-v1-meta
class RawStatus(TypedDict):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str
    details: RawStatusDetails


class APIError(Exception):
    """ An error response of K8s API, with the ``Status`` fields if provided. """

    def __init__(
            self,
            payload: RawStatus | None,
            *,
            status: int,
    ) -> None:
        message = payload.get('message') if payload else None
        super().__init__(message, payload)
        self._status = status
        self._payload = payload

    @property
    def status(self) -> int:
        return self._status

    @property
    def code(self) -> int | None:
        return self._payload.get('code') if self._payload else None

    @property
    def reason(self) -> str | None:
        return self._payload.get('reason') if self._payload else None

    @property
    def message(self) -> str | None:
        return self._payload.get('message') if self._payload else None

    @property
    def details(self) -> RawStatusDetails | None:
        return self._payload.get('details') if self._payload else None


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


_ERROR_CLASSES: dict[int, type[APIError]] = {
    401: APIUnauthorizedError,
    403: APIForbiddenError,
    404: APINotFoundError,
    409: APIConflictError,
}


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Raise an `APIError` (or a subclass) if the response is an error one.
    """
    if response.status < 400:
        return

    # The body must be read now: raise_for_status() releases the connection.
    payload: RawStatus | None
    try:
        payload = await response.json()
    except (json.JSONDecodeError, aiohttp.ContentTypeError, aiohttp.ClientConnectionError):
        payload = None

    # Anything but K8s's Status can contain data not meant for the logs.
    if not isinstance(payload, collections.abc.Mapping) or payload.get('kind') != 'Status':
        payload = None

    cls = _ERROR_CLASSES.get(response.status, APIError)
    try:
        response.raise_for_status()
    except aiohttp.ClientResponseError as e:
        raise cls(payload, status=response.status) from e
