"""HTTP and WebSocket API for Spectr."""
