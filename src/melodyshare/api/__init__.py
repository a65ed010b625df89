"""HTTP and WebSocket API for MelodyShare."""
