from typing import cast

from inreq.clients import api
from inreq.engines import loggers
from inreq.structs import bodies, configuration, references


async def create_obj(
        *,
        settings: configuration.ClientSettings,
        resource: references.Resource,
        namespace: references.Namespace = None,
        body: bodies.RawBody,
        logger: loggers.Logger,
) -> bodies.RawBody:
    """
    Create an object, and return it as stored by the server.

    The body usually has only the name prefix (``generateName``), so the actual
    name is known only from the result. The namespace, if given, is added to
    a copy of the body unless the body has its own one.
    """
    metadata = cast(bodies.RawMeta, dict(body.get('metadata', {})))
    if namespace is not None:
        metadata.setdefault('namespace', namespace)
    body = cast(bodies.RawBody, dict(body, metadata=metadata))

    created_body: bodies.RawBody = await api.post(
        url=resource.get_url(namespace=cast(references.Namespace, metadata.get('namespace'))),
        payload=body,
        logger=logger,
        settings=settings,
    )
    return created_body
