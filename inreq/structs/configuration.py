"""
All configuration flags, options, settings to fine-tune the client.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

In this client, they are called *"settings"* (plural).
Combined, they form a *"configuration"* (singular).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).
"""
import dataclasses


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: float | None = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for each individual API request, in seconds.

    A timed out status read is treated as a transient failure and is repeated
    on the next polling cycle; a timed out submission fails the invocation.
    """

    connect_timeout: float | None = None
    """
    A timeout for establishing a TCP connection to the API server, in seconds.
    ``None`` means no separate limit (only the request timeout is applied).
    """


@dataclasses.dataclass
class PollingSettings:

    interval: float = 5.0
    """
    How often (in seconds) the request's status is read while waiting for it.

    The interval is fixed: no backoff, no jitter. The controller-side work
    is expected to take tens of seconds to minutes anyway.
    """


@dataclasses.dataclass
class ClientSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    polling: PollingSettings = dataclasses.field(default_factory=PollingSettings)
