"""
The main module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the top-level interface,
# as it is seen by the users. So, we export the individual functions.

from inreq.clients.errors import (
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
)
from inreq.engines.loggers import (
    LogFormat,
    configure,
)
from inreq.reactor.polling import (
    Outcome,
    Phase,
    SubmissionError,
    ProtocolError,
    submit_and_await,
)
from inreq.reactor.running import (
    run,
    invoke,
)
from inreq.structs.configuration import (
    ClientSettings,
    NetworkingSettings,
    PollingSettings,
)
from inreq.structs.credentials import (
    LoginError,
    ConnectionInfo,
    Vault,
)
from inreq.structs.references import (
    Resource,
    INTERNAL_REQUESTS,
)
from inreq.structs.requests import (
    RequestSpec,
    ValidationError,
    build_body,
    parse_params,
)
from inreq.utilities.piggybacking import (
    login_via_client,
    login_via_pykube,
    login_with_kubeconfig,
    login_with_service_account,
)
from inreq.utilities.versions import (
    version as __version__,
)

__all__ = [
    'APIError',
    'APIUnauthorizedError',
    'APIForbiddenError',
    'APINotFoundError',
    'APIConflictError',
    'LogFormat',
    'configure',
    'Outcome',
    'Phase',
    'SubmissionError',
    'ProtocolError',
    'submit_and_await',
    'run',
    'invoke',
    'ClientSettings',
    'NetworkingSettings',
    'PollingSettings',
    'LoginError',
    'ConnectionInfo',
    'Vault',
    'Resource',
    'INTERNAL_REQUESTS',
    'RequestSpec',
    'ValidationError',
    'build_body',
    'parse_params',
    'login_via_client',
    'login_via_pykube',
    'login_with_kubeconfig',
    'login_with_service_account',
]
