import unittest

from cryptstrap.config.firewall import (
    ACCEPT_RULES, POLICIES, REJECT_RULES, generate_iptables_rules,
)


def rule_lines(content):
    return [line for line in content.splitlines() if line and not line.startswith("#")]


class TestIptablesRules(unittest.TestCase):
    def test_structure(self):
        artifact = generate_iptables_rules()
        self.assertEqual("/etc/iptables/iptables.rules", artifact.path)
        lines = rule_lines(artifact.content)
        self.assertEqual("*filter", lines[0])
        self.assertEqual("COMMIT", lines[-1])

    def test_policies_before_rules(self):
        lines = rule_lines(generate_iptables_rules().content)
        last_policy = max(i for i, l in enumerate(lines) if l.startswith(":"))
        first_rule = min(i for i, l in enumerate(lines) if l.startswith("-A"))
        self.assertLess(last_policy, first_rule)
        self.assertEqual(list(POLICIES), lines[1:1 + len(POLICIES)])
        self.assertIn(":INPUT DROP [0:0]", lines)
        self.assertIn(":FORWARD DROP [0:0]", lines)
        self.assertIn(":OUTPUT ACCEPT [0:0]", lines)

    def test_conntrack_first(self):
        rules = [l for l in rule_lines(generate_iptables_rules().content) if l.startswith("-A")]
        self.assertEqual(ACCEPT_RULES[0], rules[0])
        self.assertIn("RELATED,ESTABLISHED", rules[0])

    def test_rejects_last(self):
        rules = [l for l in rule_lines(generate_iptables_rules([22], [51820]).content)
                 if l.startswith("-A")]
        self.assertEqual(list(REJECT_RULES), rules[-3:])
        self.assertEqual("-A INPUT -j REJECT --reject-with icmp-proto-unreachable", rules[-1])

    def test_open_ports(self):
        content = generate_iptables_rules(tcp_ports=[22, 443], udp_ports=[51820]).content
        self.assertIn("-A TCP -p tcp --dport 22 -j ACCEPT", content)
        self.assertIn("-A TCP -p tcp --dport 443 -j ACCEPT", content)
        self.assertIn("-A UDP -p udp --dport 51820 -j ACCEPT", content)

    def test_closed_by_default(self):
        content = generate_iptables_rules().content
        self.assertNotIn("--dport", content)
