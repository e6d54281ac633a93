"""Multi-channel notification delivery engine.

The package is laid out in layers: ``domain`` holds plain entities and
ports, ``infrastructure`` talks to the database and outbound providers,
``application`` composes both into the delivery pipeline and
``interfaces`` exposes it over HTTP and websockets.
"""
