from datetime import datetime, date
from typing import TypeVar, Any, Type, Optional, Callable

import attrs
import cattrs
from cattrs import override
from cattrs.gen import make_dict_unstructure_fn
from dateutil.parser import isoparse

from convergedlb.logger import log
from convergedlb.types import Json, JsonElement
from convergedlb.utils import utc_str

AnyT = TypeVar("AnyT")

# one converter for all records of this package
__converter = cattrs.Converter()

# attributes starting with an underscore never leave the process
__converter.register_unstructure_hook_factory(
    attrs.has,
    lambda cls: make_dict_unstructure_fn(
        cls,
        __converter,
        _cattrs_omit_if_default=False,
        _cattrs_use_alias=False,
        _cattrs_include_init_false=False,
        **{a.name: override(omit=True) for a in attrs.fields(cls) if a.name.startswith("_")},
    ),
)


def register_json(
    cls: Any,
    to_json_fn: Optional[Callable[[Any], JsonElement]] = None,
    from_json_fn: Optional[Callable[[Any], Any]] = None,
) -> None:
    """
    Register how values of the given type are written to and read from json.
    `cls` can be a class or a union of types.
    """
    log.trace(f"Register json hooks for {cls}")  # type: ignore
    if from_json_fn is not None:
        __converter.register_structure_hook(cls, lambda obj, _: from_json_fn(obj))  # type: ignore
    if to_json_fn is not None:
        __converter.register_unstructure_hook(cls, to_json_fn)


# timestamps are written in utc with a trailing Z
register_json(datetime, utc_str, isoparse)
register_json(date, lambda obj: obj.isoformat(), date.fromisoformat)


def to_json(node: Any, strip_nulls: bool = False) -> Json:
    """
    Unstructure a record into a json object.
    With `strip_nulls` top level properties without value are left out.
    """
    unstructured: Json = __converter.unstructure(node)
    if strip_nulls:
        unstructured = {k: v for k, v in unstructured.items() if v is not None}
    return unstructured


def from_json(js: JsonElement, clazz: Type[AnyT]) -> AnyT:
    """
    Structure the given json into an instance of `clazz`.
    Errors are logged and raised again.
    """
    try:
        return __converter.structure(js, clazz)
    except Exception as e:
        log.debug(f"Can not read {clazz.__name__} from json: {js}. Error: {e}")
        raise
