"""
Login to the cluster by borrowing the credentials from other K8s clients.

Proper authentication (auth-providers, exec-plugins, token refreshing) is
a lot of logic, which does not belong to a small CLI client. So, if the
``pykube-ng`` or ``kubernetes`` libraries are installed, they are asked to
log in, and only the resulting basic credentials are taken from them.

Without those libraries, the service account's files or the kubeconfigs
are read directly. This is enough for the CI/CD pods & most local setups.

.. seealso::
    :mod:`inreq.structs.credentials` and :func:`authenticate`.
"""
import importlib.util
import os
from collections.abc import Callable, Sequence
from typing import Any

import yaml

from inreq.engines import loggers
from inreq.structs import credentials

# Patchable in tests. The higher the priority, the more preferred the credentials are.
PRIORITY_OF_CLIENT: int = 10
PRIORITY_OF_PYKUBE: int = 20

# These two are never used together with the libraries, so their priorities may overlap.
PRIORITY_OF_KUBECONFIG: int = 10
PRIORITY_OF_SERVICE_ACCOUNT: int = 20

# As per https://kubernetes.io/docs/tasks/run-application/access-api-from-pod/
SERVICE_ACCOUNT_TOKEN_PATH = '/var/run/secrets/kubernetes.io/serviceaccount/token'
SERVICE_ACCOUNT_NAMESPACE_PATH = '/var/run/secrets/kubernetes.io/serviceaccount/namespace'
SERVICE_ACCOUNT_CA_PATH = '/var/run/secrets/kubernetes.io/serviceaccount/ca.crt'

LoginFn = Callable[..., credentials.ConnectionInfo | None]


def _is_installed(module_name: str) -> bool:
    return importlib.util.find_spec(module_name) is not None


def has_client() -> bool:
    return _is_installed('kubernetes')


def has_pykube() -> bool:
    return _is_installed('pykube')


def split_authorization(header: str | None) -> tuple[str | None, str | None]:
    """
    Split the ``Authorization`` header into the scheme and the token.

    A single word is a token without a scheme (RFC-7235, Appendix C).
    """
    if not header:
        return None, None
    scheme, _, token = header.partition(' ')
    return (scheme, token) if token else (None, scheme)


def login_via_client(
        *,
        logger: loggers.Logger,
        **_: Any,
) -> credentials.ConnectionInfo | None:
    """
    Let the official client library log in, and take the credentials it has got.
    """
    # Imported here, so that the tests can fake the library's absence.
    try:
        import kubernetes.config
    except ImportError:
        return None

    loaders = [
        (kubernetes.config.load_incluster_config, "in-cluster with a service account"),
        (kubernetes.config.load_kube_config, "via a kubeconfig file"),
    ]
    for load, how in loaders:
        try:
            load()
        except kubernetes.config.ConfigException:
            continue
        logger.debug(f"The client library has logged in {how}.")
        break
    else:
        raise credentials.LoginError("The client library has failed to log in "
                                     "both in-cluster and via kubeconfig.")

    # The auth-providers replace this method, so the fresh token is only available from here.
    config = kubernetes.client.Configuration.get_default_copy()
    scheme, token = split_authorization(config.get_api_key_with_prefix('authorization'))

    # The library knows nothing about the namespaces of the contexts, so there is no default one.
    return credentials.ConnectionInfo(
        server=config.host,
        ca_path=config.ssl_ca_cert,
        insecure=not config.verify_ssl,
        username=config.username or None,
        password=config.password or None,
        scheme=scheme,
        token=token,
        certificate_path=config.cert_file,
        private_key_path=config.key_file,
        priority=PRIORITY_OF_CLIENT,
    )


def login_via_pykube(
        *,
        logger: loggers.Logger,
        **_: Any,
) -> credentials.ConnectionInfo | None:
    """
    Let pykube-ng read its configs, and take the credentials from them.
    """
    # Imported here, so that the tests can fake the library's absence.
    try:
        import pykube
    except ImportError:
        return None

    config: pykube.KubeConfig
    try:
        config = pykube.KubeConfig.from_service_account()
        logger.debug("Pykube has logged in in-cluster with a service account.")
    except FileNotFoundError:
        try:
            config = pykube.KubeConfig.from_file()
            logger.debug("Pykube has logged in via a kubeconfig file.")
        except (pykube.PyKubeError, FileNotFoundError):
            raise credentials.LoginError("Pykube has failed to log in "
                                         "both in-cluster and via kubeconfig.")

    cluster, user = config.cluster, config.user

    # Pykube refreshes the auth-provider's token only on a request, so we make a dummy one.
    provider_token: str | None = None
    if user.get('auth-provider'):
        pykube.HTTPClient(config).get(version='', base='/')
        provider_token = (user.get('auth-provider') or {}).get('config', {}).get('access-token')

    # The certificates & keys are pykube's objects, which can dump the inline data to files.
    def filename(key: str, section: Any) -> str | None:
        value = section.get(key)
        return value.filename() if value else None

    return credentials.ConnectionInfo(
        server=cluster.get('server'),
        ca_path=filename('certificate-authority', cluster),
        insecure=cluster.get('insecure-skip-tls-verify'),
        username=user.get('username'),
        password=user.get('password'),
        token=user.get('token') or provider_token,
        certificate_path=filename('client-certificate', user),
        private_key_path=filename('client-key', user),
        default_namespace=config.namespace,
        priority=PRIORITY_OF_PYKUBE,
    )


def has_service_account() -> bool:
    return os.path.exists(SERVICE_ACCOUNT_TOKEN_PATH)


def login_with_service_account(**_: Any) -> credentials.ConnectionInfo | None:
    """
    A minimalistic login function that can get raw data from a service account.

    This is the usual case for the CI/CD pipelines: they run in pods
    of the same cluster where the requests are submitted to.
    """
    if not os.path.exists(SERVICE_ACCOUNT_TOKEN_PATH):
        return None

    with open(SERVICE_ACCOUNT_TOKEN_PATH, encoding='utf-8') as f:
        token = f.read().strip()

    namespace: str | None = None
    if os.path.exists(SERVICE_ACCOUNT_NAMESPACE_PATH):
        with open(SERVICE_ACCOUNT_NAMESPACE_PATH, encoding='utf-8') as f:
            namespace = f.read().strip()

    # The env vars are always injected into the pods, but the DNS name is a reasonable fallback.
    host = os.environ.get('KUBERNETES_SERVICE_HOST')
    port = os.environ.get('KUBERNETES_SERVICE_PORT', '443')
    server = f'https://{host}:{port}' if host else 'https://kubernetes.default.svc'

    return credentials.ConnectionInfo(
        server=server,
        ca_path=SERVICE_ACCOUNT_CA_PATH if os.path.exists(SERVICE_ACCOUNT_CA_PATH) else None,
        token=token or None,
        default_namespace=namespace or None,
        priority=PRIORITY_OF_SERVICE_ACCOUNT,
    )


def has_kubeconfig() -> bool:
    env_var_set = bool(os.environ.get('KUBECONFIG'))
    file_exists = os.path.exists(os.path.expanduser('~/.kube/config'))
    return env_var_set or file_exists


def login_with_kubeconfig(
        *,
        context_name: str | None = None,
        **_: Any,
) -> credentials.ConnectionInfo | None:
    """
    A minimalistic login function that can get raw data from kubeconfig files.

    Authentication capabilities are limited to keep the code short & simple:
    no exec-plugins, no token refreshing. The current context is used unless
    a specific context is requested (e.g. via the CLI).
    """

    # As per https://kubernetes.io/docs/concepts/configuration/organize-cluster-access-kubeconfig/
    kubeconfig = os.environ.get('KUBECONFIG')
    if not kubeconfig and os.path.exists(os.path.expanduser('~/.kube/config')):
        kubeconfig = '~/.kube/config'
    if not kubeconfig:
        return None

    paths = [path.strip() for path in kubeconfig.split(os.pathsep)]
    paths = [os.path.expanduser(path) for path in paths if path]

    # As prescribed: if the file is absent or non-deserialisable, then fail. The first value wins.
    current_context: str | None = None
    contexts: dict[Any, Any] = {}
    clusters: dict[Any, Any] = {}
    users: dict[Any, Any] = {}
    for path in paths:

        with open(path, encoding='utf-8') as f:
            config = yaml.safe_load(f.read()) or {}

        if current_context is None:
            current_context = config.get('current-context')
        for item in config.get('contexts') or []:
            contexts.setdefault(item['name'], item.get('context') or {})
        for item in config.get('clusters') or []:
            clusters.setdefault(item['name'], item.get('cluster') or {})
        for item in config.get('users') or []:
            users.setdefault(item['name'], item.get('user') or {})

    # Once fully parsed, use the requested or current context only.
    context_name = context_name if context_name is not None else current_context
    if context_name is None:
        raise credentials.LoginError("Current context is not set in kubeconfigs.")
    if context_name not in contexts:
        raise credentials.LoginError(f"Context {context_name!r} is not found in kubeconfigs.")
    context = contexts[context_name]
    cluster = clusters.get(context.get('cluster'), {})
    user = users.get(context.get('user'), {})

    # Unlike pykube's login, we do not make a fake API request to refresh the token.
    provider_token = (user.get('auth-provider') or {}).get('config', {}).get('access-token')

    # Map the retrieved fields into the credentials object.
    return credentials.ConnectionInfo(
        server=cluster.get('server'),
        ca_path=cluster.get('certificate-authority'),
        ca_data=cluster.get('certificate-authority-data'),
        insecure=cluster.get('insecure-skip-tls-verify'),
        certificate_path=user.get('client-certificate'),
        certificate_data=user.get('client-certificate-data'),
        private_key_path=user.get('client-key'),
        private_key_data=user.get('client-key-data'),
        username=user.get('username'),
        password=user.get('password'),
        token=user.get('token') or provider_token,
        default_namespace=context.get('namespace'),
        priority=PRIORITY_OF_KUBECONFIG,
    )


def get_login_fns() -> list[LoginFn]:
    """
    Select the login functions available in the current environment.

    The full-featured client libraries are preferred if installed,
    since they support the auth-providers & exec-plugins;
    the rudimentary logins are used only if there are no such libraries.
    """
    fns: list[LoginFn] = []
    if has_pykube():
        fns.append(login_via_pykube)
    if has_client():
        fns.append(login_via_client)
    if not fns:
        fns.extend([login_with_service_account, login_with_kubeconfig])
    return fns


def retrieve_credentials(
        *,
        logger: loggers.Logger,
        context_name: str | None = None,
        login_fns: Sequence[LoginFn] | None = None,
) -> dict[str, credentials.ConnectionInfo]:
    """
    Call all the login functions, and collect their non-empty results.

    Individual failures are logged and ignored as long as at least one login
    function succeeds; otherwise, the client cannot proceed at all.
    """
    login_fns = login_fns if login_fns is not None else get_login_fns()
    results: dict[str, credentials.ConnectionInfo] = {}
    for fn in login_fns:
        try:
            info = fn(logger=logger, context_name=context_name)
        except credentials.LoginError as e:
            logger.debug(f"Login via {fn.__name__} has failed: {e}")
        else:
            if info is not None:
                logger.debug(f"Login via {fn.__name__} has succeeded.")
                results[fn.__name__] = info

    if not results:
        raise credentials.LoginError("No credentials were retrieved from the login functions. "
                                     "Is the kubeconfig or service account available?")
    return results


async def authenticate(
        *,
        vault: credentials.Vault,
        logger: loggers.Logger,
        context_name: str | None = None,
) -> None:
    """ Retrieve the credentials once, and feed them into the vault. """
    results = retrieve_credentials(logger=logger, context_name=context_name)
    await vault.populate(results)
