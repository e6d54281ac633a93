"""Infrastructure adapters: persistence, providers and realtime fan-out."""
