"""
All the structures coming from/to the Kubernetes API.

The usage of these classes is spread over the codebase, so they are extracted
into a separate module of such type definitions.

For strict type-checking, they are detailed to the per-field level
(e.g. `TypedDict` instead of just ``Mapping[Any, Any]``), as used by
the client. The API can return arbitrary fields at runtime, which are not
declared in the type definitions at type-checking time.

Everything marked "raw" is a plain unwrapped unprocessed data as JSON-decoded
from Kubernetes API, or as about to be JSON-encoded for it. The client never
wraps them into classes: the bodies are dicts all the way through.
"""
from collections.abc import Mapping
from typing import Any

from typing_extensions import TypedDict

# Same as in K8s: the parameters are strings only; structured values are serialised by the caller.
Params = Mapping[str, str]


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    generateName: str
    namespace: str
    resourceVersion: str
    creationTimestamp: str


class RawCondition(TypedDict, total=False):
    type: str
    status: str
    reason: str
    message: str
    lastTransitionTime: str


class RawStatus(TypedDict, total=False):
    conditions: list[RawCondition]


class RawSpec(TypedDict, total=False):
    request: str
    params: dict[str, str]


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: RawSpec
    status: RawStatus | None


def get_name(body: Mapping[str, Any]) -> str | None:
    metadata = body.get('metadata') or {}
    name: str | None = metadata.get('name') or None
    return name


def get_conditions(body: Mapping[str, Any]) -> list[RawCondition] | None:
    """
    Get the conditions of an object, or ``None`` if the status is not yet written.

    An empty or absent list of conditions in a present status is returned as
    an empty list: the controller has started writing, but has nothing to say.
    """
    status = body.get('status')
    if not status:
        return None
    conditions: list[RawCondition] = list(status.get('conditions') or [])
    return conditions


def build_object_reference(body: Mapping[str, Any]) -> dict[str, Any]:
    """
    Construct an object reference for the logs, in the K8s ``ObjectReference`` shape.
    """
    metadata = body.get('metadata') or {}
    return dict(
        apiVersion=body.get('apiVersion'),
        kind=body.get('kind'),
        name=metadata.get('name'),
        uid=metadata.get('uid'),
        namespace=metadata.get('namespace'),
    )
