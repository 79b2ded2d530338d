"""Entry points for running the envoy agent."""
