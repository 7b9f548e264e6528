"""
The requests as the users see them, and as they are sent to the cluster.

A request is a named unit of work with string parameters. The request itself
is not interpreted here in any way: it is for the external controller to know
what the name means and how to use the parameters. Here, the request is only
validated and converted into a resource body.
"""
import dataclasses
import math
from collections.abc import Iterable, Mapping

from inreq.structs import bodies, references

# Same as the CLI default: long enough for most release actions.
DEFAULT_TIMEOUT: float = 600


class ValidationError(ValueError):
    """ Raised when the request input is malformed, before any API calls. """


@dataclasses.dataclass(frozen=True)
class RequestSpec:
    """
    A request to submit, and how to wait for it.

    ``params`` are stored as given: the values are opaque strings (they can be
    serialised JSON, which is never parsed here). ``namespace`` is optional:
    if not set, the credentials' default namespace is used, then ``"default"``.
    """
    name: str
    params: bodies.Params = dataclasses.field(default_factory=dict)
    sync: bool = True
    timeout: float = DEFAULT_TIMEOUT
    namespace: references.Namespace = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("The request name must be non-empty.")
        if not (self.timeout > 0 and math.isfinite(self.timeout)):
            raise ValidationError(f"The timeout must be a positive number of seconds, "
                                  f"got {self.timeout!r}.")


def parse_params(entries: Iterable[str]) -> dict[str, str]:
    """
    Convert ``key=value`` strings into a mapping, the latter keys overriding the former.

    Only the first ``=`` separates the key, so the values can contain ``=`` too.
    """
    params: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition('=')
        if not sep:
            raise ValidationError(f"A parameter must be in the key=value form, got {entry!r}.")
        if not key:
            raise ValidationError(f"A parameter key must be non-empty, got {entry!r}.")
        params[key] = value
    return params


def build_body(
        name: str,
        params: bodies.Params | None = None,
        *,
        resource: references.Resource = references.INTERNAL_REQUESTS,
) -> bodies.RawBody:
    """
    Build a resource body for a request.

    The object's name is generated by the server from the request name,
    so that multiple requests of the same kind can co-exist in the cluster.
    """
    if not name:
        raise ValidationError("The request name must be non-empty.")
    return {
        'apiVersion': resource.api_version,
        'kind': resource.kind or '',
        'metadata': {'generateName': f'{name}-'},
        'spec': {'request': name, 'params': dict(params or {})},
    }


def build_body_from_spec(
        spec: RequestSpec,
        *,
        resource: references.Resource = references.INTERNAL_REQUESTS,
) -> bodies.RawBody:
    return build_body(spec.name, spec.params, resource=resource)
