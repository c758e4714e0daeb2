"""HeartLink API.

Cycle tracking, partner sharing, partner chat, and AI consultation served
over FastAPI on top of the managed Postgres database.

Subpackages:
    cycle/     : Cycle prediction (pure date arithmetic)
    services/  : Domain services and database / AI / realtime clients
    routers/   : HTTP endpoints under /api/v1
    middleware/: Auth, rate limiting, response headers
"""
