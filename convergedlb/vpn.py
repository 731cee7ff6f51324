from __future__ import annotations

from enum import Enum
from typing import ClassVar, Dict, List, Optional

from attrs import define, field, frozen, evolve

from convergedlb.resources import Taggable


class VpnProtocol(Enum):
    IKE_V1 = "IKE_V1"
    IKE_V2 = "IKE_V2"
    IPSEC1 = "IPSEC1"
    IPSEC2 = "IPSEC2"
    OPEN_VPN = "OPEN_VPN"


class VpnState(Enum):
    PENDING = "PENDING"
    AVAILABLE = "AVAILABLE"
    DELETING = "DELETING"
    DELETED = "DELETED"


@frozen
class VpnGatewayCreateOptions:
    """
    Request to create a vpn gateway.
    Required values are given to `get_instance`, optional ones are attached with the
    `with_*` methods. Every `with_*` call returns a new options value.
    """

    kind: ClassVar[str] = "vpn_gateway_create_options"
    name: str
    description: str
    protocol: VpnProtocol
    endpoint: str
    cidr: Optional[str] = None
    shared_secret: Optional[str] = None
    bgp_asn: Optional[str] = None
    vlan_name: Optional[str] = None
    vpn_name: Optional[str] = None

    @staticmethod
    def get_instance(name: str, description: str, protocol: VpnProtocol, endpoint: str) -> VpnGatewayCreateOptions:
        return VpnGatewayCreateOptions(name, description, protocol, endpoint)

    def with_cidr(self, cidr: str) -> VpnGatewayCreateOptions:
        return evolve(self, cidr=cidr)

    def with_shared_secret(self, shared_secret: str) -> VpnGatewayCreateOptions:
        return evolve(self, shared_secret=shared_secret)

    def with_bgp_asn(self, bgp_asn: str) -> VpnGatewayCreateOptions:
        return evolve(self, bgp_asn=bgp_asn)

    def with_vlan_name(self, vlan_name: str) -> VpnGatewayCreateOptions:
        return evolve(self, vlan_name=vlan_name)

    def with_vpn_name(self, vpn_name: str) -> VpnGatewayCreateOptions:
        return evolve(self, vpn_name=vpn_name)


def vlan_ids(value: Optional[List[str]]) -> List[str]:
    return value if value is not None else []


@define(slots=False)
class Vpn(Taggable):
    kind: ClassVar[str] = "vpn"
    name: Optional[str] = None
    description: Optional[str] = None
    protocol: Optional[VpnProtocol] = None
    current_state: Optional[VpnState] = None
    provider_vpn_id: Optional[str] = None
    provider_vpn_ip: Optional[str] = None
    provider_region_id: Optional[str] = None
    provider_vlan_ids: List[str] = field(factory=list, converter=vlan_ids)
    tags: Dict[str, str] = field(factory=dict)

    def __str__(self) -> str:
        return str(self.provider_vpn_id)
