# src/timecapsule/storage/__init__.py
"""
Content-addressed storage clients.

Backends share one retry policy and one integrity check; they differ only in
how bytes are added, fetched and probed over HTTP.
"""
