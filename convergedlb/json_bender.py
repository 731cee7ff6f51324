from __future__ import annotations

import logging
from abc import ABC
from typing import Dict, Any, Union, Optional, Callable, List

from convergedlb.utils import last_path_segment

log = logging.getLogger("convergedlb." + __name__)


# General idea and basic implementation is taken from: https://github.com/Onyo/jsonbender
class Bender(ABC):
    """
    Base bending class.
    A bender takes a json element and produces a new value from it.
    Benders compose with `>>` and fall back with `or_else`.
    """

    def __call__(self, source: Any) -> Any:
        return self.execute(source)

    def execute(self, source: Any) -> Any:
        return source

    def or_else(self, other: Bender) -> Bender:
        return OrElse(self, other)

    def __rshift__(self, other: Bender) -> Bender:
        return Compose(self, other)


class BendingError(Exception):
    pass


Mapping = Union[Bender, Dict[str, Any]]


class S(Bender):
    """
    Retrieve a value from a JSON object under given path.
    `default` is returned if any part of the path is missing.
    """

    def __init__(self, *path: Union[str, int], default: Optional[Any] = None):
        if not path:
            raise ValueError("No path given")
        self._path = path
        self._default = default

    def execute(self, source: Any) -> Any:
        try:
            for key in self._path:
                source = source[key]
            return source
        except (KeyError, TypeError, IndexError):
            return self._default


class F(Bender):
    """
    Lifts a python callable into a Bender, so it can be composed.
    """

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any):
        self._func = func
        self._args = args
        self._kwargs = kwargs

    def execute(self, value: Any) -> Any:
        return self._func(value, *self._args, **self._kwargs)


class OrElse(Bender):
    def __init__(self, source_bender: Bender, else_bender: Bender):
        self.source_bender = source_bender
        self.else_bender = else_bender

    def execute(self, source: Any) -> Any:
        first = self.source_bender(source)
        return first if first is not None else self.else_bender(source)


class Compose(Bender):
    """
    The second bender only runs if the first one yields a value.
    """

    def __init__(self, first: Bender, second: Bender):
        self._first = first
        self._second = second

    def execute(self, source: Any) -> Any:
        value = self._first(source)
        return self._second(value) if value is not None else None


class ForallBend(Bender):
    """
    Bends each element of a list with given mapping.
    """

    def __init__(self, mapping: Mapping):
        self._mapping = mapping

    def execute(self, values: Optional[List[Any]]) -> Optional[List[Any]]:
        return None if values is None else [bend(self._mapping, v) for v in values]


class AsFloat(Bender):
    def execute(self, source: Any) -> Any:
        if isinstance(source, float):
            return source
        try:
            return float(source)
        except (TypeError, ValueError):
            return None


class LastSegment(Bender):
    """
    Reduce a resource link to its logical name.
    Lists of links are reduced element wise.
    """

    def execute(self, source: Any) -> Any:
        if isinstance(source, str):
            return last_path_segment(source)
        elif isinstance(source, list):
            return [last_path_segment(s) for s in source if isinstance(s, str)]
        else:
            return None


def bend(mapping: Mapping, source: Any) -> Any:
    """
    Bend the source with given mapping.

    Dictionaries and lists in the mapping are walked, benders are applied to the source,
    all other values are taken as constants.
    A failing bender raises a BendingError naming the key it failed for.
    """
    if isinstance(mapping, list):
        return [bend(v, source) for v in mapping]
    elif isinstance(mapping, dict):
        result = {}
        for key, inner in mapping.items():
            try:
                result[key] = bend(inner, source)
            except BendingError:
                raise
            except Exception as e:
                log.error(f"Can not bend {key}: {e}", exc_info=True)
                raise BendingError(f"Error for key {key}: {e}") from e
        return result
    elif isinstance(mapping, Bender):
        return mapping(source)
    else:
        return mapping
