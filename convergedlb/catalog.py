"""
Rebuild load balancers from the inventory of a provider.

The inventory is the collected output of the compute list calls:

    {
        "urlMaps": [...],
        "targetHttpProxies": [...],
        "globalForwardingRules": [...],
        "backendServices": [...],
        "healthChecks": [...],
    }

Every url map becomes one `ConvergedHttpLoadBalancer`. All other resources are
attached to the load balancer whose url map they (transitively) belong to.
"""
from typing import Dict, List, Optional

from convergedlb.config import Config, CatalogConfig, ConfigNotFoundError
from convergedlb.json_bender import S, ForallBend, bend
from convergedlb.loadbalancer import ConvergedHttpLoadBalancer
from convergedlb.logger import log
from convergedlb.resources import TargetHttpProxy, ForwardingRule, BackendService, BackendServiceBackend, HealthCheck
from convergedlb.types import Json
from convergedlb.utils import last_path_segment, optional_name

url_map_mapping = {
    "name": S("name"),
    "description": S("description"),
    "self_link": S("selfLink"),
    "creation_timestamp": S("creationTimestamp"),
    "default_service": S("defaultService"),
    "labels": S("labels", default={}),
    "host_rules": S("hostRules", default=[])
    >> ForallBend({"hosts": S("hosts", default=[]), "path_matcher": S("pathMatcher")}),
    "path_matchers": S("pathMatchers", default=[])
    >> ForallBend(
        {
            "name": S("name"),
            "description": S("description"),
            "path_rules": S("pathRules", default=[])
            >> ForallBend({"paths": S("paths", default=[]), "service": S("service")}),
        }
    ),
}


class Inventory:
    """
    Index of the raw inventory by self link.
    """

    def __init__(self, inventory: Json) -> None:
        self.url_maps: List[Json] = inventory.get("urlMaps") or []
        self.proxies: List[Json] = inventory.get("targetHttpProxies") or []
        self.forwarding_rules: List[Json] = inventory.get("globalForwardingRules") or []
        self.backend_services: Dict[str, Json] = self.by_link(inventory.get("backendServices") or [])
        self.health_checks: Dict[str, Json] = self.by_link(inventory.get("healthChecks") or [])

    @staticmethod
    def by_link(items: List[Json]) -> Dict[str, Json]:
        return {link: item for item in items if (link := item.get("selfLink"))}


def path_map_of(matcher: Json) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for rule in matcher["path_rules"] or []:
        if service := rule["service"]:
            for path in rule["paths"] or []:
                result[path] = last_path_segment(service)
    return result


def referenced_services(url_map: Json) -> List[str]:
    links: List[str] = []
    if url_map["default_service"]:
        links.append(url_map["default_service"])
    for matcher in url_map["path_matchers"] or []:
        for rule in matcher["path_rules"] or []:
            if rule["service"]:
                links.append(rule["service"])
    # keep the order of first reference
    return list(dict.fromkeys(links))


def collect_load_balancer(raw_url_map: Json, inventory: Inventory) -> ConvergedHttpLoadBalancer:
    url_map = bend(url_map_mapping, raw_url_map)
    lb = ConvergedHttpLoadBalancer.from_catalog(
        url_map["name"],
        url_map["description"],
        url_map["self_link"],
        url_map["creation_timestamp"],
        optional_name(url_map["default_service"]),  # type: ignore
    )
    for key, value in (url_map["labels"] or {}).items():
        lb.set_tag(key, value)

    matchers = {m["name"]: m for m in url_map["path_matchers"] or []}
    for rule in url_map["host_rules"] or []:
        fallback = {"name": rule["path_matcher"], "description": None, "path_rules": []}
        matcher = matchers.get(rule["path_matcher"], fallback)
        lb.with_url_set(matcher["name"], matcher["description"], ",".join(rule["hosts"] or []), path_map_of(matcher))

    proxy_links = set()
    for raw in inventory.proxies:
        if url_map["self_link"] and raw.get("urlMap") == url_map["self_link"]:
            proxy = TargetHttpProxy.from_api(raw)
            lb.add(proxy)
            if proxy.self_link:
                proxy_links.add(proxy.self_link)

    for raw in inventory.forwarding_rules:
        if raw.get("target") in proxy_links:
            lb.add(ForwardingRule.from_api(raw))

    health_check_links: List[str] = []
    for link in referenced_services(url_map):
        raw_service = inventory.backend_services.get(link)
        if raw_service is None:
            log.debug(f"{lb}: backend service {link} not in inventory")
            lb.with_existing_backend_service(link)
            continue
        lb.add(BackendService.from_api(raw_service))
        for raw_backend in raw_service.get("backends") or []:
            lb.add(BackendServiceBackend.from_api(raw_backend))
        health_check_links.extend(raw_service.get("healthChecks") or [])

    for link in dict.fromkeys(health_check_links):
        if raw_check := inventory.health_checks.get(link):
            lb.add(HealthCheck.from_api(raw_check))
        else:
            log.debug(f"{lb}: health check {link} not in inventory")
            lb.with_existing_health_check(link)

    log.debug(
        f"{lb}: {len(lb.target_http_proxies)} proxies, {len(lb.forwarding_rules)} forwarding rules, "
        f"{len(lb.backend_services)} backend services, {len(lb.health_checks)} health checks"
    )
    return lb


def collect_load_balancers(inventory: Json, config: Optional[CatalogConfig] = None) -> List[ConvergedHttpLoadBalancer]:
    if config is None:
        try:
            config = Config.catalog
        except ConfigNotFoundError:
            config = CatalogConfig()
    index = Inventory(inventory)
    log.info(f"Collecting load balancers from {len(index.url_maps)} url maps")
    result: List[ConvergedHttpLoadBalancer] = []
    for raw_url_map in index.url_maps:
        name = raw_url_map.get("name")
        if not config.should_collect(name):
            log.debug(f"Skip url map {name}")
            continue
        result.append(collect_load_balancer(raw_url_map, index))
    return result
