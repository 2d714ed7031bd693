"""
Storefront Service package.

The storefront gateway fronts catalog and order requests, enforcing:
- Rate limiting: per-client sliding window, process-local
- Authentication: HTTP Basic for admin operations
- Validation: every parameter and body is sanitized before the store is touched
- Caching: short-lived catalog responses, invalidated on every catalog write

Structure:
- app.main: FastAPI app and route wiring.
- app.domain: Models, route table, response envelopes and the gateway.
- app.adapters: Catalog/order stores (PostgreSQL, in-memory).
- app.caching: Response cache.
- app.ratelimit: Sliding-window limiter and client identification.
- app.auth: Basic credential guard.
- app.validation: Input sanitizers.
- app.catalog: Cache-or-store catalog service.
- app.messaging: WhatsApp order message and checkout link.
"""
