import re
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from dateutil.parser import isoparse

from convergedlb.logger import log
from convergedlb.types import JsonElement

UTC_Date_Format = "%Y-%m-%dT%H:%M:%SZ"


def utc() -> datetime:
    return datetime.now(timezone.utc)


def utc_str(dto: Optional[datetime] = None) -> str:
    dt = dto if dto is not None else utc()
    if dt.tzinfo is not None and dt.tzname() != "UTC":
        offset = dt.tzinfo.utcoffset(dt)
        if offset is not None and offset.total_seconds() != 0:
            dt = (dt - offset).replace(tzinfo=timezone.utc)
    return dt.strftime(UTC_Date_Format)


def parse_timestamp(timestamp: Optional[str]) -> Optional[datetime]:
    """
    Parse a provider creation timestamp (RFC 3339, e.g. `2015-03-13T12:21:34.321-07:00`).
    Naive values are interpreted as UTC. Returns None for missing or unparsable input.
    """
    if not timestamp:
        return None
    try:
        dt = isoparse(timestamp)
    except (ValueError, OverflowError):
        log.debug(f"Can not parse timestamp: {timestamp}")
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def last_path_segment(link: str) -> str:
    """
    The part of a resource link after the final `/`.
    `.../global/backendServices/my-svc` -> `my-svc`
    """
    return link.rsplit("/", 1)[-1]


def optional_name(link: Optional[str]) -> Optional[str]:
    return last_path_segment(link) if link else None


env_var_substitution_pattern = re.compile(r"\$\((\w+)\)")


def replace_env_vars(elem: JsonElement, environment: Mapping[str, str], keep_unresolved: bool = True) -> JsonElement:
    """
    Replace all `$(NAME)` placeholders in strings of the given json element.
    Unresolved placeholders are either kept as is or the value is dropped from its container.
    """

    class UnresolvedEnvVar:
        pass

    unresolved = UnresolvedEnvVar()

    def walk(current: Any, path: List[Union[str, int]]) -> Any:
        if isinstance(current, dict):
            replaced = {k: walk(v, path + [k]) for k, v in current.items()}
            return {k: v for k, v in replaced.items() if v is not unresolved}
        elif isinstance(current, list):
            replaced_list = [walk(v, path + [i]) for i, v in enumerate(current)]
            return [v for v in replaced_list if v is not unresolved]
        elif isinstance(current, str):
            value = current
            for match in re.finditer(env_var_substitution_pattern, current):
                env_var_name = match.group(1)
                if (found := environment.get(env_var_name)) is not None:
                    value = value.replace(match.group(0), found)
                elif not keep_unresolved:
                    conf_path = ".".join(str(p) for p in path)
                    log.warning(f"Environment variable `{env_var_name}` is not defined (config path: {conf_path})")
                    return unresolved
            return value
        else:
            return current

    result = walk(elem, [])
    return None if result is unresolved else result
