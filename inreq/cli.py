import functools
import math
from collections.abc import Callable, Sequence
from typing import Any

import click

from inreq.engines import loggers
from inreq.reactor import running
from inreq.structs import configuration, references, requests
from inreq.utilities import versions


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


class SecondsParamType(click.FloatRange):
    """ A positive and finite number of seconds. """
    name = 'seconds'

    def __init__(self) -> None:
        super().__init__(min=0, min_open=True)

    def convert(self, value: Any, param: Any, ctx: Any) -> float:
        seconds: float = super().convert(value, param, ctx)
        if not math.isfinite(seconds):
            self.fail(f"{value!r} is not a finite number of seconds.", param, ctx)
        return seconds


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: bool | None = None,
                log_refkey: str | None = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


@click.version_option(prog_name='inreq', version=versions.version or 'unknown')
@click.group(name='inreq', context_settings=dict(
    auto_envvar_prefix='INREQ',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('-r', '--request', type=str, required=True,
              help="The request name, as known to the controller.")
@click.option('-p', '--param', 'params', type=str, multiple=True, metavar='KEY=VALUE',
              help="A request parameter; can be repeated; the last value of a key wins.")
@click.option('-s', '--sync', type=click.BOOL, default=True, show_default=True,
              help="Whether to wait for the request's completion.")
@click.option('-t', '--timeout', type=SecondsParamType(),
              default=requests.DEFAULT_TIMEOUT, show_default=True,
              help="How long to wait for the completion, in seconds.")
@click.option('-i', '--interval', type=SecondsParamType(),
              default=configuration.PollingSettings.interval, show_default=True,
              help="How often to check the status, in seconds.")
@click.option('-n', '--namespace', type=str, default=None,
              help="The namespace for the request; the current context's one by default.")
@click.option('--context', 'context_name', type=str, default=None,
              help="The kubeconfig context to use instead of the current one.")
@click.pass_context
def create(
        ctx: click.Context,
        request: str,
        params: Sequence[str],
        sync: bool,
        timeout: float,
        interval: float,
        namespace: str | None,
        context_name: str | None,
) -> None:
    """ Submit a request and, in the sync mode, wait for its outcome. """
    try:
        spec = requests.RequestSpec(
            name=request,
            params=requests.parse_params(params),
            sync=sync,
            timeout=timeout,
            namespace=references.NamespaceName(namespace) if namespace else None,
        )
    except requests.ValidationError as e:
        raise click.UsageError(str(e), ctx=ctx)

    settings = configuration.ClientSettings()
    settings.polling.interval = interval
    exit_code = running.run(spec, settings=settings, context_name=context_name)
    ctx.exit(exit_code)
