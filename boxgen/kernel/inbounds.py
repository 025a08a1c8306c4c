from __future__ import annotations

from boxgen.db.profiles import Profile
from boxgen.kernel.types import Inbound, ListenInbound, TunInbound

LAN_LISTEN = "::"
LOCAL_LISTEN = "127.0.0.1"


def generate_inbounds(profile: Profile) -> list[Inbound]:
    """Listeners enabled by the profile: mixed, http, socks, then tun."""
    general = profile.general_config
    advanced = profile.advanced_config
    tun = profile.tun_config

    listen = LAN_LISTEN if general.allow_lan else LOCAL_LISTEN
    inbounds: list[Inbound] = []

    for inbound_type, port in (
        ("mixed", general.mixed_port),
        ("http", advanced.port),
        ("socks", advanced.socks_port),
    ):
        if port > 0:
            inbounds.append(
                ListenInbound(
                    type=inbound_type,
                    listen=listen,
                    listen_port=port,
                    tcp_multi_path=advanced.tcp_concurrent,
                )
            )

    if tun.enable:
        inbounds.append(
            TunInbound(
                interface_name=tun.interface_name,
                mtu=tun.mtu,
                auto_route=tun.auto_route,
                strict_route=tun.strict_route,
                endpoint_independent_nat=tun.endpoint_independent_nat,
                stack=tun.stack.lower(),
            )
        )
    return inbounds
