from collections.abc import Mapping
from typing import Any

import aiohttp

from inreq.clients import auth, errors
from inreq.engines import loggers
from inreq.structs import configuration


@auth.reauthenticated_request
async def request(
        method: str,
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ClientSettings,
        payload: object | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        context: auth.APIContext | None = None,  # injected by the decorator
        logger: loggers.Logger,
) -> aiohttp.ClientResponse:
    """
    Perform one request to the API, and check the response for K8s errors.

    There are no retries here: the submission is done exactly once,
    and the status reads are repeated by the polling cycle on its own terms.
    """
    if context is None:  # for type-checking!
        raise RuntimeError("API instance is not injected by the decorator.")

    if '://' not in url:
        url = context.server.rstrip('/') + '/' + url.lstrip('/')

    if timeout is None:
        timeout = aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        )

    logger.debug(f"Requesting: {method.upper()} {url}")
    response = await context.session.request(
        method=method,
        url=url,
        json=payload,
        headers=headers,
        timeout=timeout,
    )
    await errors.check_response(response)  # but do not parse it!
    return response


async def get(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ClientSettings,
        headers: Mapping[str, str] | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        logger: loggers.Logger,
) -> Any:
    response = await request(
        method='get',
        url=url,
        headers=headers,
        timeout=timeout,
        settings=settings,
        logger=logger,
    )
    async with response:
        return await response.json()


async def post(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ClientSettings,
        payload: object | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        logger: loggers.Logger,
) -> Any:
    response = await request(
        method='post',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        settings=settings,
        logger=logger,
    )
    async with response:
        return await response.json()
