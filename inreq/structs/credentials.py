"""
The credentials to access the cluster, and the per-invocation store of them.

Only what a plain HTTP client can use is kept here: the server's address,
the TLS settings, the client certificates, basic or token authentication,
and the default namespace. Retrieving these from the kubeconfigs, service
accounts, or third-party client libraries is done in `piggybacking`.

.. seealso::
    :func:`inreq.clients.auth.reauthenticated_request`.
"""
import asyncio
import collections
import dataclasses
import inspect
from collections.abc import AsyncIterator, Callable, Mapping
from typing import NewType, TypeVar, cast


class LoginError(Exception):
    """ Raised when the client cannot login to the API. """


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials and connection flags to use.
    """
    server: str  # e.g. "https://localhost:6443"
    ca_path: str | None = None
    ca_data: bytes | None = None
    insecure: bool | None = None
    username: str | None = None
    password: str | None = None
    scheme: str | None = None  # RFC-7235/5.1: e.g. Bearer, Basic, Digest, etc.
    token: str | None = None
    certificate_path: str | None = None
    certificate_data: bytes | None = None
    private_key_path: str | None = None
    private_key_data: bytes | None = None
    default_namespace: str | None = None  # used when the request has no namespace.
    priority: int = 0


_T = TypeVar('_T', bound=object)

# Usually, the name of the login function that has produced the credentials.
VaultKey = NewType('VaultKey', str)


@dataclasses.dataclass
class VaultItem:
    """
    The credentials with the objects made for them (e.g. HTTP sessions).

    The objects live exactly as long as the credentials are valid,
    and are closed when the credentials are invalidated or the vault is closed.
    """
    info: ConnectionInfo
    caches: dict[str, object] | None = None


class Vault:
    """
    The credentials of one invocation, from the most to the least preferred.

    Normally, only the top-priority credentials are used. If the API rejects
    them (HTTP 401), they are invalidated, and the next ones are tried.
    There is no re-login: the client lives for minutes at most, so once all
    the credentials are rejected, the invocation fails.
    """
    _current: dict[VaultKey, VaultItem]
    _invalid: dict[VaultKey, list[ConnectionInfo]]

    def __init__(
            self,
            __src: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__()
        self._current = {}
        self._invalid = collections.defaultdict(list)
        self._lock = asyncio.Lock()
        if __src is not None:
            self._add(__src)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self._current!r}>'

    def __bool__(self) -> bool:
        return bool(self._current)

    async def extended(
            self,
            factory: Callable[[ConnectionInfo], _T],
            purpose: str | None = None,
    ) -> AsyncIterator[tuple[VaultKey, ConnectionInfo, _T]]:
        """
        Yield the credentials with an object made for them by the factory.

        The object is made once per credentials and purpose, and then reused.
        The iteration stops as soon as the yielded credentials are not
        invalidated by the consumer, i.e. when they have worked.
        """
        purpose = purpose if purpose is not None else repr(factory)
        while True:
            async with self._lock:
                key, item = self.select()
                if item.caches is None:
                    item.caches = {}
                if purpose not in item.caches:
                    item.caches[purpose] = factory(item.info)
                obj = cast(_T, item.caches[purpose])

            yield key, item.info, obj

            # Compared by identity: equal credentials could be re-added as a new item.
            async with self._lock:
                if self._current.get(key) is item:
                    break

    def select(self) -> tuple[VaultKey, VaultItem]:
        """
        Get the most preferred credentials, or fail if there are none.

        Among the credentials of equal priority, the earliest added ones win.
        """
        if not self._current:
            raise LoginError("No valid credentials are available.")
        key = max(self._current, key=lambda k: self._current[k].info.priority)
        return key, self._current[key]

    async def invalidate(
            self,
            key: VaultKey,
            *,
            exc: Exception | None = None,
    ) -> None:
        """
        Exclude the rejected credentials, and fail if nothing is left.

        The given exception (usually, the HTTP 401 error) is re-raised then,
        so that the caller sees the actual reason; `LoginError` otherwise.
        """
        async with self._lock:
            item = self._current.pop(key, None)
            if item is not None:
                self._invalid[key].append(item.info)
                await self._flush_caches(item)
            if not self._current:
                if exc is not None:
                    raise exc
                raise LoginError("Ran out of valid credentials.")

    async def populate(
            self,
            __src: Mapping[str, object],
    ) -> None:
        """
        Add the retrieved credentials, except those already rejected.
        """
        async with self._lock:
            self._add(__src)

    async def close(self) -> None:
        """
        Close the objects made for the credentials (e.g. the HTTP sessions).
        """
        async with self._lock:
            for item in self._current.values():
                await self._flush_caches(item)

    @staticmethod
    async def _flush_caches(item: VaultItem) -> None:
        # aiohttp sessions cannot be closed by the garbage collector, so we do it.
        for obj in (item.caches or {}).values():
            close = getattr(obj, 'close', None)
            if close is None:
                continue
            if inspect.iscoroutinefunction(close):
                await close()
            else:
                close()
        item.caches = None

    def _add(self, __src: Mapping[str, object]) -> None:
        for key, info in __src.items():
            if not isinstance(info, ConnectionInfo):
                raise ValueError("Only ConnectionInfo instances are currently accepted.")
            key = VaultKey(str(key))
            if info not in self._invalid[key]:
                self._current[key] = VaultItem(info=info)
