"""
Case Status service package for the USCIS case status proxy.

This package exposes the FastAPI application that looks up USCIS case
status on behalf of browser clients:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.auth: Client-credentials token provider with an in-memory cache.
- app.uscis: Case status client (lookup and connectivity probe).
- app.normalization: Mapping of upstream payloads into one stable shape.

Design notes:
- Module import must not perform network calls. All IO happens in route
  handlers.
- Use the shared/ utilities for logging, metrics, config, and errors.
- The only state is the cached bearer token, owned by the TokenProvider
  instance the service creates.
"""
