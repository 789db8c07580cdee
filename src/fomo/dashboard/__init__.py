"""Display surface adapter: JSON snapshots and a WebSocket push channel."""
