"""
Periscope: diagnostics for actor-style message delivery.

Collects dead letters, unhandled messages and dropped messages into bounded
per-category buffers and answers windowed "how many recently?" queries.
"""

__version__ = "0.1.0"
