from convergedlb.loadbalancer import ConvergedHttpLoadBalancer
from convergedlb.resources import (
    BalancingMode,
    BackendService,
    BackendServiceBackend,
    ForwardingRule,
    HealthCheck,
    TargetHttpProxy,
    UrlSet,
)
from convergedlb.vpn import Vpn, VpnGatewayCreateOptions, VpnProtocol, VpnState

__title__ = "convergedlb"
__description__ = "In-memory model of converged http load balancers and their sub-resources."
__license__ = "Apache 2.0"
__version__ = "1.0.0"

__all__ = [
    "ConvergedHttpLoadBalancer",
    "BalancingMode",
    "BackendService",
    "BackendServiceBackend",
    "ForwardingRule",
    "HealthCheck",
    "TargetHttpProxy",
    "UrlSet",
    "Vpn",
    "VpnGatewayCreateOptions",
    "VpnProtocol",
    "VpnState",
]
