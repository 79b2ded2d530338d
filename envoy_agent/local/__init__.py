"""
Local package for the envoy agent.

This package provides the effective configuration and the proxy supervisor.
"""

from .config import ProxyConfiguration, build_proxy_config, effective_settings

__all__ = ["ProxyConfiguration", "build_proxy_config", "effective_settings"]
