"""Validated configuration for shutdown registration."""

import collections.abc
import inspect
import typing
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ShutdownConfigError

REQUIRED_LOGGER_IMPLEMENTATIONS = ('log_trace', 'log_info', 'log_error')

FIELD_ERRORS: Dict[str, str] = {
    'events': 'events is required and must be a string or list of strings',
    'server': 'server is required and must be a drainable server instance',
    'logger': f"logger with required implementations is required [{', '.join(REQUIRED_LOGGER_IMPLEMENTATIONS)}]",
    'drain_grace_ms': 'drain_grace_ms is required and must be a number greater than 0',
    'new_connections_grace_ms': 'new_connections_grace_ms must be a number greater than or equal to 0',
    'teardown': 'teardown must be an async function, or a function annotated to return an Awaitable, taking no arguments',
    'teardown_timeout_ms': 'teardown_timeout_ms must be a number greater than 0',
}

# Option names accepted for compatibility with the shutdown_timeout/callback naming
FIELD_ALIASES: Dict[str, str] = {
    'shutdown_timeout': 'drain_grace_ms',
    'new_connections_timeout': 'new_connections_grace_ms',
    'callback': 'teardown',
}


def _translate(err: ValidationError) -> ShutdownConfigError:
    """Turn the first pydantic error into a ShutdownConfigError naming the field."""
    first = err.errors()[0]
    loc = str(first['loc'][0]) if first['loc'] else 'options'
    field = FIELD_ALIASES.get(loc, loc)
    return ShutdownConfigError(field, FIELD_ERRORS.get(field, first['msg']))


def _normalize_events(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)) or not value:
        raise ValueError(FIELD_ERRORS['events'])
    events: List[str] = []
    for name in value:
        if not isinstance(name, str) or not name.strip():
            raise ValueError(FIELD_ERRORS['events'])
        if name not in events:
            events.append(name)
    return tuple(events)


def _returns_awaitable(value: Any) -> bool:
    try:
        annotation = inspect.signature(value, eval_str=True).return_annotation
    except (TypeError, ValueError, NameError, SyntaxError):
        return False
    origin = typing.get_origin(annotation) or annotation
    return inspect.isclass(origin) and issubclass(origin, collections.abc.Awaitable)


def is_async_callable(value: Any) -> bool:
    """Check that value is async, or a callable whose return annotation is an Awaitable."""
    if inspect.iscoroutinefunction(value):
        return True
    if not callable(value):
        return False
    return inspect.iscoroutinefunction(getattr(value, '__call__', None)) or _returns_awaitable(value)


class ShutdownOptions(BaseModel):
    """Runtime registration value handed to the shutdown registrar."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    events: Tuple[str, ...]
    server: Any
    logger: Any
    drain_grace_ms: float = Field(
        gt=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices('drain_grace_ms', 'shutdown_timeout'),
    )
    new_connections_grace_ms: float = Field(
        default=0,
        ge=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices('new_connections_grace_ms', 'new_connections_timeout'),
    )
    teardown: Optional[Callable[[], Awaitable[Any]]] = Field(
        default=None,
        validation_alias=AliasChoices('teardown', 'callback'),
    )
    teardown_timeout_ms: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)

    @field_validator('events', mode='before')
    @classmethod
    def validate_events(cls, value: Any) -> Tuple[str, ...]:
        return _normalize_events(value)

    @field_validator('server', mode='before')
    @classmethod
    def validate_server(cls, value: Any) -> Any:
        if value is None:
            raise ValueError(FIELD_ERRORS['server'])
        return value

    @field_validator('logger', mode='before')
    @classmethod
    def validate_logger(cls, value: Any) -> Any:
        if value is None or not all(
            callable(getattr(value, name, None)) for name in REQUIRED_LOGGER_IMPLEMENTATIONS
        ):
            raise ValueError(FIELD_ERRORS['logger'])
        return value

    @field_validator('new_connections_grace_ms', mode='before')
    @classmethod
    def default_new_connections_grace(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator('teardown', mode='before')
    @classmethod
    def validate_teardown(cls, value: Any) -> Any:
        if value is None:
            return None
        if not is_async_callable(value):
            raise ValueError(FIELD_ERRORS['teardown'])
        try:
            inspect.signature(value).bind()
        except TypeError:
            raise ValueError(FIELD_ERRORS['teardown'])
        except ValueError:
            # Builtins and some C callables expose no signature
            pass
        return value

    @classmethod
    def parse(cls, options: Dict[str, Any]) -> 'ShutdownOptions':
        """Validate raw options, raising ShutdownConfigError for the first bad field."""
        try:
            return cls.model_validate(options)
        except ValidationError as err:
            raise _translate(err) from err


class ShutdownSettings(BaseModel):
    """Serializable part of the shutdown configuration (events and durations)."""

    events: List[str] = ['SIGINT', 'SIGTERM']
    drain_grace_ms: float = Field(default=10000, gt=0, allow_inf_nan=False)
    new_connections_grace_ms: float = Field(default=0, ge=0, allow_inf_nan=False)
    teardown_timeout_ms: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)

    @field_validator('events', mode='before')
    @classmethod
    def validate_events(cls, value: Any) -> List[str]:
        return list(_normalize_events(value))

    @classmethod
    def from_yaml(cls, content: str) -> 'ShutdownSettings':
        """Create settings from a YAML document.

        The document may either hold the settings at the top level or under a
        ``shutdown`` key.
        """
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as err:
            raise ShutdownConfigError('settings', f"Invalid YAML: {str(err)}") from err
        if not isinstance(data, dict):
            raise ShutdownConfigError('settings', 'settings document must be a mapping')
        if isinstance(data.get('shutdown'), dict):
            data = data['shutdown']
        try:
            return cls.model_validate(data)
        except ValidationError as err:
            raise _translate(err) from err

    def merge(self, **overrides: Any) -> 'ShutdownSettings':
        """Return a copy with every non-None override applied and re-validated."""
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return ShutdownSettings.model_validate(data)
        except ValidationError as err:
            raise _translate(err) from err

    def to_options(
        self,
        server: Any,
        logger: Any,
        teardown: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> Dict[str, Any]:
        """Build the raw registration options for these settings."""
        return {
            'events': list(self.events),
            'server': server,
            'logger': logger,
            'drain_grace_ms': self.drain_grace_ms,
            'new_connections_grace_ms': self.new_connections_grace_ms,
            'teardown': teardown,
            'teardown_timeout_ms': self.teardown_timeout_ms,
        }
