"""HTTP and WebSocket routers, included by server.create_app()."""
