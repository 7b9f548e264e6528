"""
Submitting the requests and waiting for their outcomes.

The request is submitted exactly once. Its outcome is then observed by reading
the object's status at a fixed interval (there is no watching: the controller's
work is expected to take tens of seconds to minutes, so polling is sufficient).

The status is interpreted as a simple state machine::

    Pending ──> Observing ──> Succeeded | Failed | Rejected
       │            │
       └────────────┴──────> TimedOut (by the client's own clock)

* ``Pending``: the status is not written yet, or the conditions have not
  converged to a single authoritative condition (zero or several of them).
* ``Observing``: exactly one condition with the ``Running`` reason.
* ``Succeeded``, ``Failed``, ``Rejected``: exactly one condition with such
  a reason; these are terminal, the polling stops.

Any other reason of a single condition is a violation of the protocol between
this client and the controller: we do not guess what it means, and fail.
"""
import asyncio
import collections.abc
import enum
import logging

import aiohttp

from inreq.clients import auth, creating, errors, fetching
from inreq.engines import loggers
from inreq.structs import bodies, configuration, references, requests

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1


class SubmissionError(Exception):
    """ Raised when the request cannot be created in the cluster. Never retried. """


class ProtocolError(Exception):
    """ Raised when the API's or the controller's responses are not as expected. """


class Phase(str, enum.Enum):
    PENDING = 'Pending'
    OBSERVING = 'Observing'
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'
    REJECTED = 'Rejected'

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_PHASES


class Outcome(str, enum.Enum):
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'
    REJECTED = 'Rejected'
    TIMED_OUT = 'TimedOut'
    PROTOCOL_ERROR = 'ProtocolError'

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self]


TERMINAL_PHASES = frozenset({Phase.SUCCEEDED, Phase.FAILED, Phase.REJECTED})

# The condition reasons, as written by the controller, and how we see them.
REASONS: dict[str, Phase] = {
    'Running': Phase.OBSERVING,
    'Succeeded': Phase.SUCCEEDED,
    'Failed': Phase.FAILED,
    'Rejected': Phase.REJECTED,
}

# The pipelines depend on these codes: never change them.
EXIT_CODES: dict[Outcome, int] = {
    Outcome.SUCCEEDED: EXIT_SUCCESS,
    Outcome.FAILED: 21,
    Outcome.REJECTED: 22,
    Outcome.TIMED_OUT: EXIT_ERROR,
    Outcome.PROTOCOL_ERROR: EXIT_ERROR,
}


def interpret(body: bodies.RawBody) -> tuple[Phase, bodies.RawCondition | None]:
    """
    Interpret the latest snapshot of the object's status.

    Only the newest snapshot matters: the history of conditions is not kept.
    """
    conditions = bodies.get_conditions(body)
    if conditions is None or len(conditions) != 1:
        return Phase.PENDING, None

    condition = conditions[0]
    if not isinstance(condition, collections.abc.Mapping):
        raise ProtocolError(f"Malformed condition of the request: {condition!r}")
    reason = condition.get('reason')
    if reason not in REASONS:
        raise ProtocolError(f"Unsupported reason of the request's condition: {reason!r}")
    return REASONS[reason], condition


async def submit(
        *,
        body: bodies.RawBody,
        settings: configuration.ClientSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        logger: loggers.Logger,
) -> bodies.RawBody:
    """
    Create the request's object once, and ensure it has a server-generated name.
    """
    try:
        created = await creating.create_obj(
            settings=settings,
            resource=resource,
            namespace=namespace,
            body=body,
            logger=logger,
        )
    except errors.APIError as e:
        raise SubmissionError(f"The request is rejected by the API "
                              f"(HTTP {e.status}, {e.reason or 'no reason'}): {e.message}") from e
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise SubmissionError(f"The request cannot be sent to the API: {e!r}") from e

    if not bodies.get_name(created):
        raise ProtocolError("The API has not returned the name of the created request.")
    return created


async def await_outcome(
        *,
        name: str,
        timeout: float,
        settings: configuration.ClientSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        logger: loggers.Logger,
) -> Outcome:
    """
    Read the request's status at a fixed interval until it is terminal or timed out.

    The timeout is measured from the call of this function (i.e. from right after
    the submission). Neither the reads nor the sleeps go beyond the deadline,
    so the outcome comes no earlier than the timeout and no later than one
    interval after it, even with a slow or unresponsive API.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    phase: Phase | None = None
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.error(f"Timed out after {timeout:g}s waiting for the request's completion.")
            return Outcome.TIMED_OUT

        condition: bodies.RawCondition | None = None
        try:
            body = await asyncio.wait_for(fetching.read_obj(
                settings=settings,
                resource=resource,
                namespace=namespace,
                name=name,
                logger=logger,
            ), timeout=remaining)
        except errors.APINotFoundError as e:
            raise ProtocolError(f"The request {name!r} has disappeared while being awaited.") from e
        except (errors.APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to read the request's status; will retry: {e!r}")
            new_phase = Phase.PENDING
        else:
            new_phase, condition = interpret(body)

        if new_phase != phase:
            logger.debug(f"The request is {new_phase.value.lower()}.")
            if new_phase is Phase.OBSERVING:
                logger.info("The request is running.")
        phase = new_phase

        if phase.terminal:
            outcome = Outcome(phase.value)
            message = (condition or {}).get('message') or ''
            if outcome is Outcome.SUCCEEDED:
                logger.info(f"The request has succeeded. {message}".strip())
            elif outcome is Outcome.FAILED:
                logger.error(f"The request has failed. {message}".strip())
            else:
                logger.error(f"The request has been rejected. {message}".strip())
            return outcome

        remaining = deadline - loop.time()
        await asyncio.sleep(min(settings.polling.interval, max(remaining, 0)))


async def submit_and_await(
        spec: requests.RequestSpec,
        *,
        settings: configuration.ClientSettings,
        resource: references.Resource = references.INTERNAL_REQUESTS,
) -> Outcome | None:
    """
    Submit a request and, in the sync mode, wait for its outcome.

    Returns ``None`` in the async mode: the successful submission is the result.
    Raises `SubmissionError` or `ProtocolError` on the fatal failures.
    """
    namespace: references.Namespace
    if not resource.namespaced:
        namespace = None
    else:
        namespace = references.NamespaceName(
            spec.namespace or auth.get_default_namespace() or references.DEFAULT_NAMESPACE)

    body = requests.build_body_from_spec(spec, resource=resource)
    created = await submit(
        body=body,
        settings=settings,
        resource=resource,
        namespace=namespace,
        logger=logger,
    )

    name = bodies.get_name(created)
    if name is None:  # for type-checking; it is already checked in `submit()`.
        raise ProtocolError("The API has not returned the name of the created request.")

    object_logger = loggers.ObjectLogger(body=created)
    object_logger.info(f"The request {spec.name!r} has been submitted as {name!r}.")
    if not spec.sync:
        return None

    object_logger.info(f"Waiting for the request's completion up to {spec.timeout:g}s.")
    return await await_outcome(
        name=name,
        timeout=spec.timeout,
        settings=settings,
        resource=resource,
        namespace=namespace,
        logger=object_logger,
    )
