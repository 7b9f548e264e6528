import base64
import contextlib
import functools
import ssl
import tempfile
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, TypeVar, cast

import aiohttp

from inreq.clients import errors
from inreq.structs import credentials
from inreq.utilities import versions

# The credentials of the current invocation, as set by `running.invoke`.
# All API calls take the credentials from here and report the rejected ones back.
vault_var: ContextVar[credentials.Vault] = ContextVar('vault_var')

_F = TypeVar('_F', bound=Callable[..., Any])


def reauthenticated_request(fn: _F) -> _F:
    """
    Inject an `APIContext` into an API call, and switch the credentials on 401.

    The call is repeated with the next credentials from the vault each time
    the API rejects the current ones. When no credentials are left, the last
    HTTP 401 error is escalated to the caller.

    An explicitly passed ``context=`` disables this logic: the call is made
    once, as is.
    """
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        if 'context' in kwargs:
            return await fn(*args, **kwargs)

        vault: credentials.Vault = vault_var.get()
        async for key, info, context in vault.extended(APIContext, 'contexts'):
            try:
                return await fn(*args, **kwargs, context=context)
            except errors.APIUnauthorizedError as e:
                await vault.invalidate(key, exc=e)

        # Unreachable: either extended() or invalidate() raise when nothing is left.
        raise credentials.LoginError("Ran out of connection credentials.")
    return cast(_F, wrapper)


class APIContext:
    """
    An HTTP session for specific credentials, plus what is needed for the URLs.

    Made once per :class:`ConnectionInfo` and cached in the vault
    (see :meth:`Vault.extended`), which also closes it in the end.
    """

    session: aiohttp.ClientSession
    server: str
    default_namespace: str | None

    def __init__(
            self,
            info: credentials.ConnectionInfo,
    ) -> None:
        super().__init__()
        self.session = self.make_aiohttp_session(info)
        self.session.headers['User-Agent'] = f'inreq/{versions.version or "unknown"}'
        self.server = info.server
        self.default_namespace = info.default_namespace

    def make_aiohttp_session(self, info: credentials.ConnectionInfo) -> aiohttp.ClientSession:
        auth: aiohttp.BasicAuth | None = None
        if info.username and info.password:
            auth = aiohttp.BasicAuth(info.username, info.password)

        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=0, ssl=make_ssl_context(info)),
            headers=make_auth_headers(info),
            auth=auth,
        )

    async def close(self) -> None:
        await self.session.close()


def make_ssl_context(info: credentials.ConnectionInfo) -> ssl.SSLContext:
    """
    Build the TLS settings: the server's CA, the client's certificate & key.

    The certificate & key can only be loaded from files, so the inline data
    (as in kubeconfigs) go to the temporary files, which exist only while
    the context is being built.
    """
    for name in ['ca', 'certificate', 'private_key']:
        if getattr(info, f'{name}_path') and getattr(info, f'{name}_data'):
            raise credentials.LoginError(f"Both {name} path & data are set. Need only one.")

    with contextlib.ExitStack() as stack:

        def as_path(path: str | None, data: bytes | None) -> str | None:
            if path or not data:
                return path
            file = stack.enter_context(tempfile.NamedTemporaryFile(buffering=0))
            file.write(decode_to_pem(data).encode('ascii'))
            return file.name

        context = ssl.create_default_context(
            purpose=ssl.Purpose.SERVER_AUTH,
            cafile=info.ca_path,
            cadata=decode_to_pem(info.ca_data) if info.ca_data is not None else None,
        )
        cert_path = as_path(info.certificate_path, info.certificate_data)
        pkey_path = as_path(info.private_key_path, info.private_key_data)
        if cert_path and pkey_path:
            context.load_cert_chain(certfile=cert_path, keyfile=pkey_path)

    if info.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def make_auth_headers(info: credentials.ConnectionInfo) -> dict[str, str]:
    if info.scheme and info.token:
        return {'Authorization': f'{info.scheme} {info.token}'}
    elif info.scheme:
        return {'Authorization': info.scheme}
    elif info.token:
        return {'Authorization': f'Bearer {info.token}'}
    else:
        return {}


def decode_to_pem(data: str | bytes) -> str:
    """
    Accept both the PEM-encoded data and base64-encoded PEM (as in kubeconfigs).
    """
    if isinstance(data, str) and data.startswith('-----BEGIN '):
        return data
    elif isinstance(data, bytes) and data.startswith(b'-----BEGIN '):
        return data.decode('ascii')
    else:
        return base64.b64decode(data).decode('ascii')


def get_default_namespace() -> str | None:
    """
    Get the default namespace of the most preferred credentials, if any.
    """
    vault: credentials.Vault | None = vault_var.get(None)
    if not vault:
        return None
    _, item = vault.select()
    return item.info.default_namespace
