"""HTTP API

main.py: FastAPI application, lifespan and error handlers
deps.py: Request dependencies (database, current user, coach client, HTTP client)
models.py: Request and response bodies
routes/: One router per resource under /api
"""
