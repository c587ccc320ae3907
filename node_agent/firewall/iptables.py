# node_agent/firewall/iptables.py
"""
IPTables Manager for Relay Nodes
Applies NAT masquerade, forwarding and kill-switch rules for the tunnel
interface

Rules are applied one at a time and the first failure aborts the set.
iptables has no transaction here, so a failure can leave earlier rules
of the same set in place; FirewallError.applied lists them.
"""

import logging
from typing import List

from ..command import CommandError, CommandRunner, run_command

logger = logging.getLogger('relay-agent.firewall')

Rule = List[str]


class FirewallError(Exception):
    """A firewall rule could not be applied"""

    def __init__(self, rule: Rule, cause: Exception, applied: List[Rule]):
        self.rule = rule
        self.applied = applied
        super().__init__(f"rule {' '.join(rule)!r} failed: {cause}")


def nat_rules(interface: str) -> List[Rule]:
    """Masquerade tunnel traffic and accept forwarding through the tunnel"""
    return [
        ["-t", "nat", "POSTROUTING", "-o", interface, "-j", "MASQUERADE"],
        ["FORWARD", "-i", interface, "-j", "ACCEPT"],
        ["FORWARD", "-o", interface, "-m", "conntrack", "--ctstate", "RELATED,ESTABLISHED", "-j", "ACCEPT"],
    ]


def kill_switch_rules(interface: str) -> List[Rule]:
    """Drop new connections that do not traverse the tunnel"""
    return [
        ["OUTPUT", "!", "-o", interface, "-m", "conntrack", "--ctstate", "NEW", "-j", "DROP"],
        ["INPUT", "!", "-i", interface, "-m", "conntrack", "--ctstate", "NEW", "-j", "DROP"],
    ]


def _with_action(rule: Rule, action: str) -> List[str]:
    """Insert the -C/-A action in front of the chain name"""
    if rule[:1] == ["-t"]:
        return rule[:2] + [action] + rule[2:]
    return [action] + rule


class IPTablesManager:
    """
    Applies rule sets for one tunnel interface

    Each rule is probed with `iptables -C` and appended only when missing,
    so re-running a set after a restart does not duplicate rules.
    """

    def __init__(self, interface: str, runner: CommandRunner = run_command):
        if not interface:
            raise ValueError("interface required")
        self.interface = interface
        self._run = runner

    def _exists(self, rule: Rule) -> bool:
        try:
            self._run("iptables", *_with_action(rule, "-C"))
            return True
        except CommandError:
            return False

    def _apply(self, rules: List[Rule], name: str) -> None:
        applied: List[Rule] = []
        for rule in rules:
            if self._exists(rule):
                logger.debug(f"Rule already present: {' '.join(rule)}")
                continue
            try:
                self._run("iptables", *_with_action(rule, "-A"))
            except CommandError as e:
                logger.error(f"Failed to apply {name} rule {' '.join(rule)}: {e}")
                if applied:
                    logger.warning(f"{len(applied)} {name} rules were applied before the failure")
                raise FirewallError(rule, e, applied) from e
            applied.append(rule)

        logger.info(f"Applied {name} rules for {self.interface} ({len(applied)} new)")

    def apply_nat_rules(self) -> None:
        self._apply(nat_rules(self.interface), "NAT")

    def enable_kill_switch(self) -> None:
        self._apply(kill_switch_rules(self.interface), "kill-switch")
