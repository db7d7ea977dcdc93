# domain_scout/__init__.py
"""
DomainScout package initializer.
Defines package version and exposes the discovery API and CLI.
"""
__version__ = "0.1.0"

from domain_scout.engine import DiscoveryOrchestrator, discover_domain_urls, run_discovery

__all__ = ["__version__", "DiscoveryOrchestrator", "discover_domain_urls", "run_discovery"]
