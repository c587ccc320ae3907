from .iptables import FirewallError, IPTablesManager, kill_switch_rules, nat_rules

__all__ = ["FirewallError", "IPTablesManager", "kill_switch_rules", "nat_rules"]
