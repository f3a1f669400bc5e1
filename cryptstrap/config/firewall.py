"""
iptables ruleset.

A stateful default-deny firewall: inbound and forwarded traffic is dropped
unless it belongs to a known connection, comes from loopback, is an ICMP echo
request, or is accepted by the TCP / UDP chains. Whatever is left is rejected
the way a closed port would be.
"""
from typing import List, Sequence

from cryptstrap.utils.types import ConfigArtifact

IPTABLES_RULES = "/etc/iptables/iptables.rules"

POLICIES = (
    ":INPUT DROP [0:0]",
    ":FORWARD DROP [0:0]",
    ":OUTPUT ACCEPT [0:0]",
    ":TCP - [0:0]",
    ":UDP - [0:0]",
)

# conntrack state rules come before the protocol rules
ACCEPT_RULES = (
    "-A INPUT -m conntrack --ctstate RELATED,ESTABLISHED -j ACCEPT",
    "-A INPUT -i lo -j ACCEPT",
    "-A INPUT -m conntrack --ctstate INVALID -j DROP",
    "-A INPUT -p icmp -m icmp --icmp-type 8 -m conntrack --ctstate NEW -j ACCEPT",
    "-A INPUT -p udp -m conntrack --ctstate NEW -j UDP",
    "-A INPUT -p tcp --tcp-flags FIN,SYN,RST,ACK SYN -m conntrack --ctstate NEW -j TCP",
)

# Always last, in this order
REJECT_RULES = (
    "-A INPUT -p udp -j REJECT --reject-with icmp-port-unreachable",
    "-A INPUT -p tcp -j REJECT --reject-with tcp-reset",
    "-A INPUT -j REJECT --reject-with icmp-proto-unreachable",
)


def port_rules(tcp_ports: Sequence[int], udp_ports: Sequence[int]) -> List[str]:
    rules = [f"-A TCP -p tcp --dport {port} -j ACCEPT" for port in tcp_ports]
    rules += [f"-A UDP -p udp --dport {port} -j ACCEPT" for port in udp_ports]
    return rules


def generate_iptables_rules(
    tcp_ports: Sequence[int] = (),
    udp_ports: Sequence[int] = (),
) -> ConfigArtifact:
    """
    Render the iptables-restore ruleset.

    Args:
        tcp_ports: TCP ports opened through the TCP chain
        udp_ports: UDP ports opened through the UDP chain

    Returns:
        ConfigArtifact for /etc/iptables/iptables.rules
    """
    lines = ["# Generated at installation, loaded by iptables.service", "*filter"]
    lines += POLICIES
    lines += ACCEPT_RULES
    lines += port_rules(tcp_ports, udp_ports)
    lines += REJECT_RULES
    lines.append("COMMIT")
    return ConfigArtifact(path=IPTABLES_RULES, content="\n".join(lines) + "\n")
