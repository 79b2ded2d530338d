"""
envoy-agent: supervises the lifecycle of an Envoy sidecar proxy process.
"""
