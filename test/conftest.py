import json
import os
from typing import Iterator

from pytest import fixture

from convergedlb.config import Config, RunningConfig, add_default_configs
from convergedlb.loadbalancer import ConvergedHttpLoadBalancer
from convergedlb.types import Json


@fixture
def inventory() -> Json:
    with open(os.path.dirname(__file__) + "/files/inventory.json") as f:
        return json.load(f)  # type: ignore


@fixture
def web_lb() -> ConvergedHttpLoadBalancer:
    return (
        ConvergedHttpLoadBalancer.for_creation("web-lb", "public web site", "default-svc")
        .with_health_check("hc1", "landing page", "example.com", 80, "/healthz", 5, 5, 2, 3)
        .with_backend_service_backend("web-us", None, "UTILIZATION", 1.0, "web-us-group", None, None, 0.8)
        .with_backend_service("default-svc", "web frontends", 80, "http", "HTTP", ["hc1"], ["web-us"], 30)
        .with_url_set("site", None, "*.example.com", {"/static/*": "default-svc"})
        .with_target_http_proxy("proxy1", "public proxy")
        .with_forwarding_rule("fr1", "port 80", "107.178.245.89", "HTTP", "80", "proxy1")
    )


@fixture
def running_config() -> Iterator[RunningConfig]:
    # run every test on a fresh config and restore the previous one afterwards
    previous = RunningConfig()
    previous.apply(Config.running_config)
    fresh = RunningConfig()
    Config.running_config.apply(fresh)
    add_default_configs()
    Config.init_default_config()
    yield Config.running_config
    Config.running_config.apply(previous)
