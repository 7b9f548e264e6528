import asyncio
import logging

from inreq.clients import auth
from inreq.reactor import polling
from inreq.structs import configuration, credentials, references, requests
from inreq.utilities import piggybacking

logger = logging.getLogger(__name__)


def run(
        spec: requests.RequestSpec,
        *,
        settings: configuration.ClientSettings | None = None,
        vault: credentials.Vault | None = None,
        resource: references.Resource = references.INTERNAL_REQUESTS,
        context_name: str | None = None,
) -> int:
    """
    Run the whole request synchronously, and return the process exit code.

    This function should be used to submit a request in normal sync mode,
    e.g. from CLI; use :func:`invoke` if there is an event loop already.
    """
    return asyncio.run(invoke(
        spec,
        settings=settings,
        vault=vault,
        resource=resource,
        context_name=context_name,
    ))


async def invoke(
        spec: requests.RequestSpec,
        *,
        settings: configuration.ClientSettings | None = None,
        vault: credentials.Vault | None = None,
        resource: references.Resource = references.INTERNAL_REQUESTS,
        context_name: str | None = None,
) -> int:
    """
    Authenticate if needed, submit the request, await it, and map the outcome.

    All the expected failures are logged and converted to the exit codes here.
    The unexpected ones (i.e. bugs) are escalated with their tracebacks.
    """
    settings = settings if settings is not None else configuration.ClientSettings()
    vault = vault if vault is not None else credentials.Vault()
    vault_token = auth.vault_var.set(vault)
    try:
        if not vault:
            await piggybacking.authenticate(vault=vault, logger=logger, context_name=context_name)
        outcome = await polling.submit_and_await(spec, settings=settings, resource=resource)
    except credentials.LoginError as e:
        logger.error(f"Cannot authenticate to the cluster: {e}")
        return polling.EXIT_ERROR
    except polling.SubmissionError as e:
        logger.error(f"Cannot submit the request: {e}")
        return polling.EXIT_ERROR
    except polling.ProtocolError as e:
        logger.error(f"Unexpected response from the cluster: {e}")
        return polling.Outcome.PROTOCOL_ERROR.exit_code
    finally:
        await vault.close()
        auth.vault_var.reset(vault_token)

    return outcome.exit_code if outcome is not None else polling.EXIT_SUCCESS
