"""Parameter classification for tool functions.

Every parameter other than the receiver ends up in exactly one bucket:

- context-injected: its type knows how to pull itself out of the
  ``ToolCallContext`` (the request context, the raw request, ...);
- structured field: one field of the generated parameter model;
- aggregated: the one parameter whose type is the whole arguments object.
"""

from __future__ import annotations

import builtins
import enum
import inspect
import typing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any, get_args, get_origin

from pydantic import WithJsonSchema
from pydantic.fields import FieldInfo
from pydantic.functional_serializers import PlainSerializer, WrapSerializer
from pydantic.functional_validators import (
    AfterValidator,
    BeforeValidator,
    PlainValidator,
    WrapValidator,
)

from .attributes import ParamMarker
from .context import Parameters, is_extractable
from .exceptions import MissingIdentifierPatternError, MixedParameterKindsError
from .logging_config import create_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from .attributes import ToolFnItemAttrs
    from .source import SourceLocation

logger = create_logger(__name__)

# Serialization directives travel with the generated field; so do schema ones.
SERDE_DIRECTIVES: tuple[type, ...] = (
    BeforeValidator,
    AfterValidator,
    PlainValidator,
    WrapValidator,
    PlainSerializer,
    WrapSerializer,
)
SCHEMARS_DIRECTIVES: tuple[type, ...] = (FieldInfo, WithJsonSchema)

_RECEIVER_NAMES = ("self", "cls")


class ParamKind(enum.Enum):
    CONTEXT_INJECTED = "context_injected"
    STRUCTURED_FIELD = "structured_field"
    AGGREGATED_WHOLE = "aggregated_whole"


@dataclass
class ToolFnParam:
    """One non-receiver parameter of a tool function."""

    name: str
    kind: ParamKind
    parameter: inspect.Parameter
    annotation: Any
    serde: list[Any] = field(default_factory=list)
    schemars: list[Any] = field(default_factory=list)
    passthrough: list[Any] = field(default_factory=list)
    namespace: dict[str, Any] | None = field(default=None, repr=False)

    @property
    def default(self) -> Any:
        return self.parameter.default

    @property
    def has_default(self) -> bool:
        return self.parameter.default is not inspect.Parameter.empty

    @property
    def keyword_only(self) -> bool:
        return self.parameter.kind is inspect.Parameter.KEYWORD_ONLY

    @property
    def field_type(self) -> Any:
        """Declared type carrying the retained directives, for the generated model."""
        directives = [*self.serde, *self.schemars]
        if not directives:
            return self.annotation
        return Annotated[(self.annotation, *directives)]  # type: ignore[return-value]

    @property
    def wants_wrapper(self) -> bool:
        """True when the function declares ``Parameters[T]`` rather than ``T``."""
        return get_origin(self.annotation) is Parameters

    @property
    def payload_type(self) -> Any:
        """Type the arguments object is validated into.

        Forward references left over from definition time are resolved here,
        once, against the function's module.
        """
        if self.namespace is not None:
            self.annotation = evaluate_annotation(self.annotation, self.namespace)
            self.namespace = None
        if self.wants_wrapper:
            args = get_args(self.annotation)
            return args[0] if args else Any
        return self.annotation


@dataclass(frozen=True)
class Aggregated:
    param: ToolFnParam


@dataclass(frozen=True)
class Params:
    fields: tuple[ToolFnParam, ...]


@dataclass(frozen=True)
class NoParam:
    pass


ToolParams = Aggregated | Params | NoParam


@dataclass
class ClassifiedParams:
    """Outcome of classifying one tool function's signature."""

    receiver: inspect.Parameter | None
    receiver_is_class: bool
    params: list[ToolFnParam]
    tool_params: ToolParams

    @property
    def trivial(self) -> list[ToolFnParam]:
        return [p for p in self.params if p.kind is ParamKind.CONTEXT_INJECTED]


def evaluate_annotation(annotation: Any, namespace: dict[str, Any]) -> Any:
    """Resolve one annotation (a string or a type holding forward references)."""
    holder = _annotation_holder()
    holder.__annotations__ = {"value": annotation}
    return typing.get_type_hints(holder, globalns=namespace, include_extras=True)["value"]


def _annotation_holder() -> Callable[[], None]:
    def holder() -> None:
        pass

    return holder


class _DeferredNamespace(dict):  # type: ignore[type-arg]
    """Names the module does not define yet evaluate to forward references."""

    def __init__(self, namespace: dict[str, Any]) -> None:
        super().__init__()
        self.namespace = namespace

    def __missing__(self, key: str) -> Any:
        if key in self.namespace:
            return self.namespace[key]
        if hasattr(builtins, key):
            return getattr(builtins, key)
        return typing.ForwardRef(key)


def _defer(annotation: Any, namespace: dict[str, Any]) -> Any:
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, {}, _DeferredNamespace(namespace))  # noqa: S307
    except (TypeError, AttributeError) as e:
        logger.debug(f"Keeping annotation {annotation!r} as text: {e}")
        return annotation


def _raw_annotations(func: Callable[..., Any]) -> dict[str, Any]:
    try:
        return inspect.get_annotations(func)
    except NameError:
        # Lazily evaluated annotations that name types not defined yet
        import annotationlib

        return annotationlib.get_annotations(func, format=annotationlib.Format.STRING)


def _resolve_hints(func: Callable[..., Any]) -> tuple[dict[str, Any], set[str]]:
    """Resolve each annotation on its own; report those naming undefined types.

    Unresolved names become ``ForwardRef``s so the rest of the annotation still
    classifies. They are resolved against the function's module on first use.
    """
    hints: dict[str, Any] = {}
    deferred: set[str] = set()
    namespace = func.__globals__
    for name, annotation in _raw_annotations(func).items():
        try:
            hints[name] = evaluate_annotation(annotation, namespace)
        except NameError as e:
            logger.debug(f"Deferring annotation of {func.__qualname__}.{name}: {e}")
            hints[name] = _defer(annotation, namespace)
            deferred.add(name)
    return hints, deferred


def _split_metadata(annotation: Any) -> tuple[Any, list[Any]]:
    if get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        return base, metadata
    return annotation, []


def _defined_in_class(func: Callable[..., Any]) -> bool:
    owner, _, _ = func.__qualname__.rpartition(".")
    return bool(owner) and not owner.endswith("<locals>")


def _find_receiver(
    func: Callable[..., Any],
    parameters: list[inspect.Parameter],
    hints: dict[str, Any],
    is_classmethod: bool,
) -> inspect.Parameter | None:
    if not parameters:
        return None
    first = parameters[0]
    if first.kind not in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        return None
    if is_classmethod:
        return first
    if first.name not in _RECEIVER_NAMES:
        return None
    # In a class body the receiver may carry an annotation such as ``Self``
    if first.name not in hints or _defined_in_class(func):
        return first
    return None


def classify_parameters(
    func: Callable[..., Any],
    attrs: ToolFnItemAttrs,
    location: SourceLocation | None = None,
    *,
    is_classmethod: bool = False,
    is_staticmethod: bool = False,
) -> ClassifiedParams:
    """Partition ``func``'s parameters into injected, structured and aggregated ones.

    Raises:
        MissingIdentifierPatternError: A structured parameter has no bindable name.
        MixedParameterKindsError: Aggregated and structured parameters are combined.
    """
    hints, deferred = _resolve_hints(func)
    parameters = list(inspect.signature(func).parameters.values())
    receiver = None
    if not is_staticmethod:
        receiver = _find_receiver(func, parameters, hints, is_classmethod)

    classified: list[ToolFnParam] = []
    tool_params: ToolParams = NoParam()

    for parameter in parameters:
        if receiver is not None and parameter is receiver:
            continue

        raw = hints.get(parameter.name, parameter.annotation)
        if raw is inspect.Parameter.empty:
            raw = Any
        annotation, metadata = _split_metadata(raw)

        serde: list[Any] = []
        schemars: list[Any] = []
        passthrough: list[Any] = []
        marker: ParamMarker | None = None
        for item in metadata:
            item_marker = ParamMarker.parse(item)
            if item_marker is not None:
                marker = item_marker
            elif isinstance(item, SERDE_DIRECTIVES):
                serde.append(item)
            elif isinstance(item, SCHEMARS_DIRECTIVES):
                schemars.append(item)
            else:
                passthrough.append(item)

        if marker is None and is_extractable(annotation):
            classified.append(
                ToolFnParam(
                    parameter.name,
                    ParamKind.CONTEXT_INJECTED,
                    parameter,
                    annotation,
                    passthrough=passthrough,
                )
            )
            continue

        aggregated = (
            attrs.aggr
            or marker is ParamMarker.AGGREGATED
            or (marker is None and get_origin(annotation) is Parameters)
        )
        if aggregated:
            param = ToolFnParam(
                parameter.name,
                ParamKind.AGGREGATED_WHOLE,
                parameter,
                annotation,
                serde,
                schemars,
                passthrough,
            )
            if isinstance(tool_params, Params):
                raise MixedParameterKindsError(
                    "cannot mix aggregated and individual parameters",
                    parameter=parameter.name,
                    location=location,
                )
            if isinstance(tool_params, Aggregated):
                raise MixedParameterKindsError(
                    f"only one aggregated parameter is allowed, found "
                    f"{tool_params.param.name!r} and {parameter.name!r}",
                    parameter=parameter.name,
                    location=location,
                )
            if parameter.name in deferred:
                param.namespace = func.__globals__
            tool_params = Aggregated(param)
            classified.append(param)
            continue

        if (
            parameter.kind
            in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
            or parameter.name.startswith("_")
        ):
            raise MissingIdentifierPatternError(
                f"input param {parameter.name!r} must have a plain identifier as name",
                parameter=parameter.name,
                location=location,
            )
        param = ToolFnParam(
            parameter.name,
            ParamKind.STRUCTURED_FIELD,
            parameter,
            annotation,
            serde,
            schemars,
            passthrough,
        )
        if isinstance(tool_params, Aggregated):
            raise MixedParameterKindsError(
                "cannot mix aggregated and individual parameters",
                parameter=parameter.name,
                location=location,
            )
        previous = tool_params.fields if isinstance(tool_params, Params) else ()
        tool_params = Params((*previous, param))
        classified.append(param)

    receiver_is_class = is_classmethod or (receiver is not None and receiver.name == "cls")
    return ClassifiedParams(
        receiver=receiver,
        receiver_is_class=receiver_is_class,
        params=classified,
        tool_params=tool_params,
    )
