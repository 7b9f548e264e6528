from inreq.clients import api
from inreq.engines import loggers
from inreq.structs import bodies, configuration, references


async def read_obj(
        *,
        settings: configuration.ClientSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        name: str,
        logger: loggers.Logger,
) -> bodies.RawBody:
    """
    Read one object by its name, as it is now in the cluster.

    A 404 error is escalated as is: it is for the caller to decide whether
    the absence is normal or fatal (for the requests, it is the latter).
    """
    body: bodies.RawBody = await api.get(
        url=resource.get_url(namespace=namespace, name=name),
        logger=logger,
        settings=settings,
    )
    return body
