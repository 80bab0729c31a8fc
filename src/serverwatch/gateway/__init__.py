"""Real-time gateway collector.

Import the client directly when needed:
    from serverwatch.gateway.client import GatewayClient
"""
