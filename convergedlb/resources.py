from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Type, TypeVar, Any, Union

from attrs import define, field, setters

from convergedlb.json import from_json, register_json, to_json
from convergedlb.json_bender import Bender, S, F, LastSegment, AsFloat, bend
from convergedlb.types import Json
from convergedlb.utils import parse_timestamp, last_path_segment

log = logging.getLogger("convergedlb." + __name__)

# Only the provider assigned link may change once a record has been created.
frozen = setters.frozen
assignable = setters.NO_OP


class BalancingMode(Enum):
    utilization = "UTILIZATION"
    rate = "RATE"

    @staticmethod
    def parse(value: Any) -> Union[BalancingMode, str, None]:
        """
        Known modes become enum members, everything else is kept as given.
        """
        if value is None or isinstance(value, BalancingMode):
            return value
        try:
            return BalancingMode(str(value).upper())
        except ValueError:
            log.debug(f"Balancing mode {value} is not known, keep it as is")
            return value  # type: ignore


# a balancing mode as reported by the provider, e.g. CONNECTION
BalancingModeValue = Union[BalancingMode, str, None]


def balancing_mode_json(mode: BalancingModeValue) -> Optional[str]:
    return mode.value if isinstance(mode, BalancingMode) else mode


register_json(BalancingMode, balancing_mode_json, BalancingMode.parse)
register_json(BalancingModeValue, balancing_mode_json, BalancingMode.parse)


class Taggable:
    """
    Key/value annotations of a resource. Keys are unique, order is irrelevant.
    """

    tags: Dict[str, str]

    def set_tag(self, key: str, value: str) -> None:
        self.tags[key] = value

    def delete_tag(self, key: str) -> bool:
        return self.tags.pop(key, None) is not None


class Timestamped:
    creation_timestamp: Optional[str]

    @property
    def ctime(self) -> Optional[datetime]:
        return parse_timestamp(self.creation_timestamp)


ProviderRecordType = TypeVar("ProviderRecordType", bound="ProviderRecord")


class ProviderRecord:
    kind: ClassVar[str] = "provider_record"
    mapping: ClassVar[Dict[str, Bender]] = {}

    def to_json(self) -> Json:
        return to_json(self)

    @classmethod
    def from_json(cls: Type[ProviderRecordType], json: Json) -> ProviderRecordType:
        return from_json(json, cls)

    @classmethod
    def from_api(cls: Type[ProviderRecordType], json: Json) -> ProviderRecordType:
        mapped = bend(cls.mapping, json)
        return cls.from_json(mapped)


@define(slots=False, on_setattr=frozen)
class UrlSet(ProviderRecord):
    """
    Routing rule of the url map: requests for hosts matching `host_match_patterns`
    are routed by path prefix to the named backend service.
    """

    kind: ClassVar[str] = "url_set"
    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    host_match_patterns: Optional[str] = field(default=None)
    path_map: Optional[Dict[str, str]] = field(default=None)


@define(slots=False, on_setattr=frozen)
class TargetHttpProxy(ProviderRecord, Timestamped):
    """
    Binds an http port to the url map of the load balancer.
    """

    kind: ClassVar[str] = "target_http_proxy"
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("name"),
        "description": S("description"),
        "creation_timestamp": S("creationTimestamp"),
        "self_link": S("selfLink"),
        "url_map": S("urlMap"),
    }
    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    creation_timestamp: Optional[str] = field(default=None)
    self_link: Optional[str] = field(default=None, on_setattr=assignable)
    url_map: Optional[str] = field(default=None)

    def set_self_link(self, self_link: Optional[str]) -> None:
        self.self_link = self_link


@define(slots=False, on_setattr=frozen)
class ForwardingRule(ProviderRecord, Timestamped):
    kind: ClassVar[str] = "forwarding_rule"
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("name"),
        "description": S("description"),
        "creation_timestamp": S("creationTimestamp"),
        "ip_address": S("IPAddress"),
        "ip_protocol": S("IPProtocol"),
        "port_range": S("portRange"),
        "self_link": S("selfLink"),
        "target": S("target"),
    }
    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    creation_timestamp: Optional[str] = field(default=None)
    ip_address: Optional[str] = field(default=None)
    ip_protocol: Optional[str] = field(default=None)
    port_range: Optional[str] = field(default=None)
    self_link: Optional[str] = field(default=None, on_setattr=assignable)
    # name of the target proxy, or its link once resolved
    target: Optional[str] = field(default=None)

    def set_self_link(self, self_link: Optional[str]) -> None:
        self.self_link = self_link


def backend_group_names(backends: List[Json]) -> List[str]:
    return [last_path_segment(group) for backend in backends if (group := backend.get("group"))]


@define(slots=False, on_setattr=frozen)
class BackendService(ProviderRecord, Timestamped):
    """
    A group of backends serving one kind of traffic.
    `health_checks` and `backend_service_backends` hold logical names.
    """

    kind: ClassVar[str] = "backend_service"
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("name"),
        "description": S("description"),
        "creation_timestamp": S("creationTimestamp"),
        "port": S("port"),
        "port_name": S("portName"),
        "protocol": S("protocol"),
        "health_checks": S("healthChecks", default=[]) >> LastSegment(),
        "backend_service_backends": S("backends", default=[]) >> F(backend_group_names),
        "self_link": S("selfLink"),
        "timeout_sec": S("timeoutSec"),
    }
    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    creation_timestamp: Optional[str] = field(default=None)
    port: Optional[int] = field(default=None)
    port_name: Optional[str] = field(default=None)
    protocol: Optional[str] = field(default=None)
    health_checks: Optional[List[str]] = field(default=None)
    backend_service_backends: Optional[List[str]] = field(default=None)
    self_link: Optional[str] = field(default=None, on_setattr=assignable)
    timeout_sec: Optional[int] = field(default=None)

    def set_self_link(self, self_link: Optional[str]) -> None:
        self.self_link = self_link


@define(slots=False, on_setattr=frozen)
class BackendServiceBackend(ProviderRecord):
    """
    An instance group behind a backend service and the way traffic is spread onto it.
    With `utilization` the share follows `max_utilization`, with `rate` it follows
    `max_rate` / `max_rate_per_instance`. `capacity_scaler` scales either (0.0 - 1.0).
    """

    kind: ClassVar[str] = "backend_service_backend"
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("group") >> LastSegment(),
        "description": S("description"),
        "balancing_mode": S("balancingMode"),
        "capacity_scaler": S("capacityScaler") >> AsFloat(),
        "group": S("group"),
        "max_rate": S("maxRate"),
        "max_rate_per_instance": S("maxRatePerInstance") >> AsFloat(),
        "max_utilization": S("maxUtilization") >> AsFloat(),
    }
    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    balancing_mode: BalancingModeValue = field(default=None, converter=BalancingMode.parse)
    capacity_scaler: Optional[float] = field(default=None)
    group: Optional[str] = field(default=None)
    max_rate: Optional[int] = field(default=None)
    max_rate_per_instance: Optional[float] = field(default=None)
    max_utilization: Optional[float] = field(default=None)


@define(slots=False, on_setattr=frozen)
class HealthCheck(ProviderRecord, Timestamped):
    kind: ClassVar[str] = "health_check"
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("name"),
        "description": S("description"),
        "creation_timestamp": S("creationTimestamp"),
        # health checks carry the http settings nested, legacy http health checks flat
        "host": S("httpHealthCheck", "host").or_else(S("host")),
        "port": S("httpHealthCheck", "port").or_else(S("port")),
        "request_path": S("httpHealthCheck", "requestPath").or_else(S("requestPath")),
        "check_interval_sec": S("checkIntervalSec"),
        "timeout_sec": S("timeoutSec"),
        "healthy_threshold": S("healthyThreshold"),
        "unhealthy_threshold": S("unhealthyThreshold"),
        "self_link": S("selfLink"),
    }
    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    creation_timestamp: Optional[str] = field(default=None)
    host: Optional[str] = field(default=None)
    port: Optional[int] = field(default=None)
    request_path: Optional[str] = field(default=None)
    check_interval_sec: Optional[int] = field(default=None)
    timeout_sec: Optional[int] = field(default=None)
    healthy_threshold: Optional[int] = field(default=None)
    unhealthy_threshold: Optional[int] = field(default=None)
    self_link: Optional[str] = field(default=None, on_setattr=assignable)

    def set_self_link(self, self_link: Optional[str]) -> None:
        self.self_link = self_link
