from __future__ import annotations

import logging
from typing import ClassVar, Dict, List, Optional, Any, Tuple, Union, Sequence

from attrs import define, field

from convergedlb.json import to_json
from convergedlb.resources import (
    UrlSet,
    TargetHttpProxy,
    ForwardingRule,
    BackendService,
    BackendServiceBackend,
    HealthCheck,
    BalancingMode,
    Taggable,
    Timestamped,
    frozen,
    assignable,
)
from convergedlb.types import Json
from convergedlb.utils import optional_name

log = logging.getLogger("convergedlb." + __name__)

SubResource = Union[UrlSet, TargetHttpProxy, ForwardingRule, BackendService, BackendServiceBackend, HealthCheck]


def copy_names(names: Optional[Sequence[str]]) -> Any:
    # lists are copied, anything else is kept as given
    return list(names) if isinstance(names, (list, tuple)) else names


@define(slots=False, on_setattr=frozen)
class ConvergedHttpLoadBalancer(Taggable, Timestamped):
    """
    In-memory description of an http load balancer and all of its sub-resources.

    The aggregate is built either for creation (`for_creation`) or from an existing
    deployment (`from_catalog`) and then filled with fluent `with_*` calls.
    Sub-resources reference each other by logical name. Once a provisioning engine
    has created a sub-resource it records the provider link via `set_self_link`;
    the `*_self_link(name)` lookups then resolve logical names into links.

    Nothing is validated: names are not checked for uniqueness and references are
    not checked for existence.
    """

    kind: ClassVar[str] = "converged_http_load_balancer"

    name: Optional[str] = field(default=None)
    description: Optional[str] = field(default=None)
    # the link of the url map, assigned once the load balancer has been created
    self_link: Optional[str] = field(default=None, on_setattr=assignable)
    creation_timestamp: Optional[str] = field(default=None)
    default_backend_service: Optional[str] = field(default=None)
    url_sets: List[UrlSet] = field(factory=list)
    target_http_proxies: List[TargetHttpProxy] = field(factory=list)
    forwarding_rules: List[ForwardingRule] = field(factory=list)
    backend_services: List[BackendService] = field(factory=list)
    backend_service_backends: List[BackendServiceBackend] = field(factory=list)
    health_checks: List[HealthCheck] = field(factory=list)
    tags: Dict[str, str] = field(factory=dict)

    @classmethod
    def for_creation(
        cls, name: str, description: Optional[str], default_backend_service: str
    ) -> ConvergedHttpLoadBalancer:
        """
        A load balancer that does not exist yet: no link and no creation timestamp.
        """
        return cls(name=name, description=description, default_backend_service=default_backend_service)

    @classmethod
    def from_catalog(
        cls,
        name: str,
        description: Optional[str],
        self_link: Optional[str],
        creation_timestamp: Optional[str],
        default_backend_service: str,
    ) -> ConvergedHttpLoadBalancer:
        """
        Mirror of a load balancer that already exists at the provider.
        """
        return cls(
            name=name,
            description=description,
            self_link=self_link,
            creation_timestamp=creation_timestamp,
            default_backend_service=default_backend_service,
        )

    def set_self_link(self, self_link: Optional[str]) -> None:
        self.self_link = self_link

    def _append(self, collection: List[Any], resource: SubResource) -> ConvergedHttpLoadBalancer:
        if resource.name is not None and any(existing.name == resource.name for existing in collection):
            log.debug(f"{self.name}: {resource.kind} {resource.name} added more than once")
        collection.append(resource)
        return self

    def add(self, resource: SubResource) -> ConvergedHttpLoadBalancer:
        """
        Add a sub-resource that has been built already, e.g. read from inventory.
        """
        collections: Dict[type, List[Any]] = {
            UrlSet: self.url_sets,
            TargetHttpProxy: self.target_http_proxies,
            ForwardingRule: self.forwarding_rules,
            BackendService: self.backend_services,
            BackendServiceBackend: self.backend_service_backends,
            HealthCheck: self.health_checks,
        }
        return self._append(collections[type(resource)], resource)

    def with_url_set(
        self,
        name: str,
        description: Optional[str],
        host_match_patterns: Optional[str],
        path_map: Optional[Dict[str, str]],
    ) -> ConvergedHttpLoadBalancer:
        """
        :param host_match_patterns: the hosts this url set applies to. `*` is a wild card.
        :param path_map: path prefix -> name of the backend service that handles it.
        """
        return self._append(self.url_sets, UrlSet(name, description, host_match_patterns, path_map))

    def with_target_http_proxy(
        self,
        name: str,
        description: Optional[str],
        creation_timestamp: Optional[str] = None,
        self_link: Optional[str] = None,
    ) -> ConvergedHttpLoadBalancer:
        proxy = TargetHttpProxy(
            name=name, description=description, creation_timestamp=creation_timestamp, self_link=self_link
        )
        return self._append(self.target_http_proxies, proxy)

    def with_forwarding_rule(
        self,
        name: str,
        description: Optional[str],
        ip_address: Optional[str],
        ip_protocol: Optional[str],
        port_range: Optional[str],
        target: Optional[str],
        creation_timestamp: Optional[str] = None,
        self_link: Optional[str] = None,
    ) -> ConvergedHttpLoadBalancer:
        """
        :param ip_protocol: HTTP or HTTPS
        :param port_range: e.g. 80 or 8080
        :param target: the target proxy this rule forwards to
        """
        rule = ForwardingRule(
            name=name,
            description=description,
            creation_timestamp=creation_timestamp,
            ip_address=ip_address,
            ip_protocol=ip_protocol,
            port_range=port_range,
            self_link=self_link,
            target=target,
        )
        return self._append(self.forwarding_rules, rule)

    def with_backend_service(
        self,
        name: str,
        description: Optional[str],
        port: Optional[int],
        port_name: Optional[str],
        protocol: Optional[str],
        health_checks: Optional[Sequence[str]],
        backend_service_backends: Optional[Sequence[str]],
        timeout_sec: Optional[int],
        creation_timestamp: Optional[str] = None,
        self_link: Optional[str] = None,
    ) -> ConvergedHttpLoadBalancer:
        service = BackendService(
            name=name,
            description=description,
            creation_timestamp=creation_timestamp,
            port=port,
            port_name=port_name,
            protocol=protocol,
            health_checks=copy_names(health_checks),
            backend_service_backends=copy_names(backend_service_backends),
            self_link=self_link,
            timeout_sec=timeout_sec,
        )
        return self._append(self.backend_services, service)

    def with_existing_backend_service(self, self_link: Optional[str]) -> ConvergedHttpLoadBalancer:
        """
        Reference a backend service that exists already, known only by its link.
        """
        service = BackendService(name=optional_name(self_link), self_link=self_link)
        return self._append(self.backend_services, service)

    def with_backend_service_backend(
        self,
        name: str,
        description: Optional[str],
        balancing_mode: Union[BalancingMode, str, None],
        capacity_scaler: Optional[float],
        group: Optional[str],
        max_rate: Optional[int],
        max_rate_per_instance: Optional[float],
        max_utilization: Optional[float],
    ) -> ConvergedHttpLoadBalancer:
        backend = BackendServiceBackend(
            name=name,
            description=description,
            balancing_mode=balancing_mode,  # type: ignore
            capacity_scaler=capacity_scaler,
            group=group,
            max_rate=max_rate,
            max_rate_per_instance=max_rate_per_instance,
            max_utilization=max_utilization,
        )
        return self._append(self.backend_service_backends, backend)

    def with_health_check(
        self,
        name: str,
        description: Optional[str],
        host: Optional[str],
        port: Optional[int],
        request_path: Optional[str],
        check_interval_sec: Optional[int],
        timeout_sec: Optional[int],
        healthy_threshold: Optional[int],
        unhealthy_threshold: Optional[int],
        creation_timestamp: Optional[str] = None,
        self_link: Optional[str] = None,
    ) -> ConvergedHttpLoadBalancer:
        check = HealthCheck(
            name=name,
            description=description,
            creation_timestamp=creation_timestamp,
            host=host,
            port=port,
            request_path=request_path,
            check_interval_sec=check_interval_sec,
            timeout_sec=timeout_sec,
            healthy_threshold=healthy_threshold,
            unhealthy_threshold=unhealthy_threshold,
            self_link=self_link,
        )
        return self._append(self.health_checks, check)

    def with_existing_health_check(self, self_link: Optional[str]) -> ConvergedHttpLoadBalancer:
        """
        Reference a health check that exists already, known only by its link.
        """
        return self._append(self.health_checks, HealthCheck(name=optional_name(self_link), self_link=self_link))

    def backend_service_self_link(self, name: str) -> Optional[str]:
        for service in self.backend_services:
            if service.name == name:
                return service.self_link
        return None

    def target_proxy_self_link(self, name: str) -> Optional[str]:
        for proxy in self.target_http_proxies:
            if proxy.name == name:
                return proxy.self_link
        return None

    def health_check_self_link(self, name: str) -> Optional[str]:
        for check in self.health_checks:
            if check.name == name:
                return check.self_link
        return None

    def provisioning_order(self) -> List[SubResource]:
        """
        All sub-resources in the order they have to be created:
        health checks and backends before backend services, backend services before
        url sets and proxies, proxies before forwarding rules.
        """
        return [
            *self.health_checks,
            *self.backend_service_backends,
            *self.backend_services,
            *self.url_sets,
            *self.target_http_proxies,
            *self.forwarding_rules,
        ]

    def unresolved(self) -> List[Tuple[str, Optional[str]]]:
        """
        (kind, name) of every sub-resource that can carry a link but has none yet.
        """
        linked: List[Sequence[Union[HealthCheck, BackendService, TargetHttpProxy, ForwardingRule]]] = [
            self.health_checks,
            self.backend_services,
            self.target_http_proxies,
            self.forwarding_rules,
        ]
        return [(res.kind, res.name) for resources in linked for res in resources if res.self_link is None]

    def to_json(self) -> Json:
        return to_json(self)

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}"
