"""
Allow-list static responder.

A small thread-pool TCP server that reads one request line per connection,
checks the requested path against a fixed allow-list and answers with the
file content or the rendered template page.
"""

__version__ = "1.0.0"
