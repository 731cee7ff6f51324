import logging

from pytest import LogCaptureFixture

from convergedlb.catalog import collect_load_balancers, referenced_services, url_map_mapping
from convergedlb.config import Config, CatalogConfig, RunningConfig
from convergedlb.json_bender import bend
from convergedlb.resources import BalancingMode
from convergedlb.types import Json

link_prefix = "https://www.googleapis.com/compute/v1/projects/test/global"


def test_collect_all(inventory: Json) -> None:
    lbs = collect_load_balancers(inventory)
    assert [lb.name for lb in lbs] == ["web-map", "internal-map"]
    assert all(lb.self_link is not None and lb.creation_timestamp is not None for lb in lbs)


def test_web_map(inventory: Json) -> None:
    web = collect_load_balancers(inventory)[0]
    assert web.description == "main web site"
    assert web.self_link == f"{link_prefix}/urlMaps/web-map"
    assert web.creation_timestamp == "2015-03-13T12:21:34.321-07:00"
    assert web.default_backend_service == "web-svc"
    assert web.tags == {"env": "prod"}

    # url sets
    assert len(web.url_sets) == 1
    url_set = web.url_sets[0]
    assert url_set.name == "site-paths"
    assert url_set.description == "routes of the web site"
    assert url_set.host_match_patterns == "example.com,*.example.com"
    assert url_set.path_map == {"/video": "video-svc", "/video/*": "video-svc", "/static/*": "legacy-svc"}

    # proxies and forwarding rules belong to this url map only
    assert [p.name for p in web.target_http_proxies] == ["web-proxy"]
    assert [r.name for r in web.forwarding_rules] == ["web-rule"]
    assert web.target_proxy_self_link("web-proxy") == f"{link_prefix}/targetHttpProxies/web-proxy"

    # backend services in order of reference, unknown ones are referenced by link
    assert [s.name for s in web.backend_services] == ["web-svc", "video-svc", "legacy-svc"]
    legacy = web.backend_services[2]
    assert legacy.self_link == f"{link_prefix}/backendServices/legacy-svc"
    assert legacy.port is None and legacy.description is None
    assert web.backend_service_self_link("video-svc") == f"{link_prefix}/backendServices/video-svc"

    # backends of all referenced services
    assert [b.name for b in web.backend_service_backends] == ["web-us", "web-eu", "video-us"]
    assert [b.balancing_mode for b in web.backend_service_backends] == [
        BalancingMode.utilization,
        BalancingMode.rate,
        "CONNECTION",
    ]

    # health checks once each, unknown ones are referenced by link
    assert [h.name for h in web.health_checks] == ["web-hc", "video-hc"]
    assert web.health_checks[0].request_path == "/healthz"
    assert web.health_check_self_link("video-hc") == f"{link_prefix}/httpHealthChecks/video-hc"


def test_internal_map(inventory: Json) -> None:
    internal = collect_load_balancers(inventory)[1]
    assert internal.description is None
    assert internal.default_backend_service == "video-svc"
    assert internal.url_sets == []
    assert internal.tags == {}
    assert [p.name for p in internal.target_http_proxies] == ["internal-proxy"]
    assert [r.name for r in internal.forwarding_rules] == ["internal-rule"]
    assert [s.name for s in internal.backend_services] == ["video-svc"]
    assert internal.unresolved() == []


def test_filter_by_config(inventory: Json) -> None:
    only_internal = collect_load_balancers(inventory, CatalogConfig(include=["internal-map"]))
    assert [lb.name for lb in only_internal] == ["internal-map"]
    without_internal = collect_load_balancers(inventory, CatalogConfig(exclude=["internal-map"]))
    assert [lb.name for lb in without_internal] == ["web-map"]


def test_empty_inventory() -> None:
    assert collect_load_balancers({}) == []
    # a url map without any related resources
    url_map = {"name": "lonely", "defaultService": f"{link_prefix}/backendServices/a"}
    lbs = collect_load_balancers({"urlMaps": [url_map]})
    assert len(lbs) == 1
    lonely = lbs[0]
    assert lonely.self_link is None
    assert lonely.default_backend_service == "a"
    assert lonely.target_http_proxies == []
    assert [s.name for s in lonely.backend_services] == ["a"]


def test_referenced_services(inventory: Json) -> None:
    url_map = bend(url_map_mapping, inventory["urlMaps"][0])
    assert referenced_services(url_map) == [
        f"{link_prefix}/backendServices/web-svc",
        f"{link_prefix}/backendServices/video-svc",
        f"{link_prefix}/backendServices/legacy-svc",
    ]


def test_collect_with_loaded_config(inventory: Json, running_config: RunningConfig) -> None:
    Config.load_config({"catalog": {"exclude": ["web-map"]}})
    assert [lb.name for lb in collect_load_balancers(inventory)] == ["internal-map"]
    # an explicit config wins over the loaded one
    assert [lb.name for lb in collect_load_balancers(inventory, CatalogConfig())] == ["web-map", "internal-map"]


def test_null_values_in_inventory() -> None:
    url_map = {
        "name": "sparse",
        "selfLink": f"{link_prefix}/urlMaps/sparse",
        "defaultService": f"{link_prefix}/backendServices/a",
        "labels": None,
        "hostRules": None,
        "pathMatchers": None,
    }
    service = {
        "name": "a",
        "selfLink": f"{link_prefix}/backendServices/a",
        "backends": None,
        "healthChecks": None,
    }
    lb = collect_load_balancers({"urlMaps": [url_map], "backendServices": [service]}, CatalogConfig())[0]
    assert lb.tags == {}
    assert lb.url_sets == []
    assert [s.name for s in lb.backend_services] == ["a"]
    assert lb.backend_service_backends == []
    assert lb.health_checks == []


def test_duplicates_in_inventory_are_logged(caplog: LogCaptureFixture) -> None:
    url_map = {"name": "dup", "selfLink": f"{link_prefix}/urlMaps/dup"}
    proxy = {"name": "proxy", "urlMap": f"{link_prefix}/urlMaps/dup"}
    with caplog.at_level(logging.DEBUG, logger="convergedlb"):
        lb = collect_load_balancers({"urlMaps": [url_map], "targetHttpProxies": [proxy, proxy]}, CatalogConfig())[0]
    assert [p.name for p in lb.target_http_proxies] == ["proxy", "proxy"]
    assert "target_http_proxy proxy added more than once" in caplog.text
