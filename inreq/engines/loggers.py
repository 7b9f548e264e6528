"""
Logging of the requests' progress in a human- and machine-readable way.

Everything logged about a specific request goes through the object logger,
which carries the request's reference: it is then rendered either as a prefix
of the message (``[namespace/name]``) in the text formats, or as a structured
field in the JSON format for the CI/CD log parsers.
"""
import copy
import enum
import logging
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

# Luckily, we do not mock these ones in tests, so we can import them into our namespace.
try:
    # python-json-logger>=3.1.0
    from pythonjsonlogger.core import RESERVED_ATTRS as _pjl_RESERVED_ATTRS
    from pythonjsonlogger.json import JsonFormatter as _pjl_JsonFormatter
except ImportError:
    # python-json-logger<3.1.0
    from pythonjsonlogger.jsonlogger import JsonFormatter as _pjl_JsonFormatter  # type: ignore
    from pythonjsonlogger.jsonlogger import RESERVED_ATTRS as _pjl_RESERVED_ATTRS  # type: ignore

from inreq.structs import bodies

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = logging.Logger | LoggerAdapter

logger = logging.getLogger('inreq.objects')

# A key for object references in JSON logs, as seen by the log parsers.
DEFAULT_JSON_REFKEY = 'object'


class LogFormat(enum.Enum):
    """ Log formats, as specified on CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # not used for formatting, only for detection


# The severities as the log collectors understand them, by the highest level of each.
SEVERITIES: list[tuple[int, str]] = [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
]


def get_severity(levelno: int) -> str:
    for highest, severity in SEVERITIES:
        if levelno <= highest:
            return severity
    return 'fatal'


def get_prefix(ref: Mapping[str, Any]) -> str:
    namespace = ref.get('namespace') or ''
    name = ref.get('name') or ''
    return f"[{namespace}/{name}]" if namespace else f"[{name}]"


class ObjectFormatter(logging.Formatter):
    """ A marker of the formatters that know about the object references. """


class ObjectTextFormatter(ObjectFormatter, logging.Formatter):
    pass


class ObjectJsonFormatter(ObjectFormatter, _pjl_JsonFormatter):
    """
    Put the object reference to its own field instead of the message.

    The reference goes under ``refkey`` (``"object"`` by default). The record's
    level also goes as ``severity``, as expected by most log collectors.
    """

    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        reserved_attrs = set(kwargs.pop('reserved_attrs', _pjl_RESERVED_ATTRS)) | {'k8s_ref'}
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, reserved_attrs=reserved_attrs, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, object],
            record: logging.LogRecord,
            message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        ref = getattr(record, 'k8s_ref', None)
        if ref is not None:
            log_record[self._refkey] = ref
        log_record.setdefault('severity', get_severity(record.levelno))


class ObjectPrefixingMixin(ObjectFormatter):
    """ Prefix the messages with ``[namespace/name]`` of the object, if any. """

    def format(self, record: logging.LogRecord) -> str:
        ref = getattr(record, 'k8s_ref', None)
        if ref is not None:
            record = copy.copy(record)  # others handlers must see the original message.
            record.msg = f"{get_prefix(ref)} {record.msg}"
        return super().format(record)


class ObjectPrefixingTextFormatter(ObjectPrefixingMixin, ObjectTextFormatter):
    pass


class ObjectPrefixingJsonFormatter(ObjectPrefixingMixin, ObjectJsonFormatter):
    pass


class ObjectLogger(LoggerAdapter):
    """
    A logger of one specific request, as it was created in the cluster.

    The request's reference (in the shape of K8s's ``ObjectReference``)
    is attached to every record as ``k8s_ref``, and is rendered either
    as a prefix or as a JSON field, depending on the formatter.
    """

    def __init__(self, *, body: Mapping[str, Any]) -> None:
        super().__init__(logger, dict(k8s_ref=bodies.build_object_reference(body)))

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # By default, the adapter's extra replaces the call's one; we need both.
        kwargs["extra"] = dict(self.extra or {}, **kwargs.get('extra', {}))
        return msg, kwargs


class _InreqStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """ A marker for the handlers added by `configure`, to not duplicate them. """


# The loggers of the libraries, which are too noisy for CI logs unless debugging.
NOISY_LOGGERS = ['asyncio']


def configure(
        debug: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat = LogFormat.FULL,
        log_prefix: bool | None = None,
        log_refkey: str | None = None,
) -> None:
    """
    Set up the root logger for a CLI invocation (repeatable, e.g. in tests).
    """
    if debug or verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = _InreqStreamHandler()
    handler.setFormatter(make_formatter(log_format=log_format,
                                        log_prefix=log_prefix,
                                        log_refkey=log_refkey))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, _InreqStreamHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # A null handler stops the last-resort printing of the non-propagated messages.
    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.propagate = bool(debug)
        noisy.handlers[:] = [] if debug else [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = None,
        log_refkey: str | None = None,
) -> ObjectFormatter:
    """
    Make a formatter for a log format: one of the predefined, or a custom one.

    The prefixes are on by default in the text formats, off in JSON.
    """
    if log_format is LogFormat.JSON:
        prefixed = bool(log_prefix)
        json_cls = ObjectPrefixingJsonFormatter if prefixed else ObjectJsonFormatter
        return json_cls(refkey=log_refkey)

    if isinstance(log_format, LogFormat):
        fmt = log_format.value
    elif isinstance(log_format, str):
        fmt = log_format
    else:
        raise ValueError(f"Unsupported log format: {log_format!r}")

    prefixed = log_prefix is None or log_prefix
    text_cls = ObjectPrefixingTextFormatter if prefixed else ObjectTextFormatter
    return text_cls(fmt)
