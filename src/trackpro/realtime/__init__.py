"""Real-time infrastructure — broadcast hub + WebSocket channel.

Learn: Live events flow one way through the server:
1. Producers (simulator, REST handlers, viewer reports) → BroadcastHub
2. BroadcastHub → one outbound queue per connected viewer → WebSocket

The hub is in-process and single-node. It keeps no history — the REST
API is the source of truth and the live channel only tells viewers
when to look again.
"""
